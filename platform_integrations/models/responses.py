# Platform Integrations Response Models
"""
Pydantic models for API responses. Field names are serialized in
camelCase for the web client.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class HealthResponse(_CamelModel):
    """Health check response."""
    status: str
    version: str
    database_connected: bool


class ConnectionResponse(_CamelModel):
    """Connection response. Never includes credentials."""
    id: str
    name: str
    platform: str
    status: str
    project_count: int = 0
    last_sync: Optional[datetime] = None
    last_sync_error: Optional[str] = None
    metadata: dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_connection(cls, connection) -> "ConnectionResponse":
        return cls(
            id=connection.id,
            name=connection.name,
            platform=connection.platform,
            status=connection.status,
            project_count=connection.project_count or 0,
            last_sync=connection.last_sync,
            last_sync_error=connection.last_sync_error,
            metadata=connection.connection_metadata or {},
            created_at=connection.created_at,
            updated_at=connection.updated_at,
        )


class ConnectionTestResponse(_CamelModel):
    success: bool
    message: str
    status: Optional[str] = None


class SyncResponse(_CamelModel):
    success: bool
    status: str
    message: str
    project_count: int = 0
    last_sync: Optional[datetime] = None


class ProjectsResponse(_CamelModel):
    projects: list[dict[str, Any]]
    total_count: int
    connection: dict[str, Any]
    timestamp: datetime


class DeleteResponse(_CamelModel):
    message: str
