"""
Result types returned by the connection handler.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from platform_integrations.errors import ErrorCode, IntegrationError
from platform_integrations.platforms.models import ProjectData


@dataclass
class ConnectionTestResult:
    """Outcome of a connectivity test; never carries an exception."""
    success: bool
    message: str
    status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.status is not None:
            data["status"] = self.status
        return data


@dataclass
class SyncResult:
    success: bool
    status: str
    message: str
    project_count: int = 0
    last_sync: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status,
            "message": self.message,
            "projectCount": self.project_count,
            "lastSync": self.last_sync.isoformat() if self.last_sync else None,
        }


@dataclass
class ProjectDataResult:
    """
    Tagged result of a project data fetch.

    ``success`` with an empty ``projects`` list means the platform had
    nothing to return; a failure always carries an ``error_code``.
    """
    success: bool
    projects: List[ProjectData] = field(default_factory=list)
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, projects: List[ProjectData]) -> "ProjectDataResult":
        return cls(success=True, projects=list(projects))

    @classmethod
    def failure(cls, error: IntegrationError) -> "ProjectDataResult":
        return cls(success=False, error_code=error.error_code, message=error.message)

    @property
    def is_empty(self) -> bool:
        return self.success and not self.projects
