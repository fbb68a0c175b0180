# Platform Integrations API Models
from .requests import CreateConnectionRequest, ConfigTestRequest
from .responses import (
    ConnectionResponse,
    ConnectionTestResponse,
    DeleteResponse,
    HealthResponse,
    ProjectsResponse,
    SyncResponse,
)

__all__ = [
    "CreateConnectionRequest",
    "ConfigTestRequest",
    "ConnectionResponse",
    "ConnectionTestResponse",
    "DeleteResponse",
    "HealthResponse",
    "ProjectsResponse",
    "SyncResponse",
]
