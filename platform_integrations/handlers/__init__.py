# Platform Integrations Handlers
from .connection_handler import ConnectionHandler
from .results import ConnectionTestResult, ProjectDataResult, SyncResult

__all__ = ["ConnectionHandler", "ConnectionTestResult", "ProjectDataResult", "SyncResult"]
