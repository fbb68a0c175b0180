"""
Unified data models for platform integrations

Canonical entities (``ProjectData``, ``Task``, ``TeamMember``, ``Metric``)
are what every transformer produces regardless of platform. Raw payloads
are one dataclass per platform, tagged by ``platform``, carrying the
unmodified API responses from client to transformer.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Jira project keys (PROJ, ABC_2) or numeric project ids
JIRA_PROJECT_KEY_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_]*|\d+")


class Platform(str, Enum):
    """Supported project-management platforms"""
    JIRA = "jira"
    MONDAY = "monday"
    TROFOS = "trofos"

    @property
    def display_name(self) -> str:
        return {
            Platform.JIRA: "Jira",
            Platform.MONDAY: "Monday.com",
            Platform.TROFOS: "TROFOS",
        }[self]


class ConnectionStatus(str, Enum):
    """Connection lifecycle states"""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    ERROR = "error"


class TaskStatus(str, Enum):
    """Canonical task statuses"""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    IN_REVIEW = "In Review"
    DONE = "Done"
    BLOCKED = "Blocked"


class TaskPriority(str, Enum):
    """Canonical task priorities"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# ==================== Canonical output ====================

@dataclass
class TeamMember:
    """Unified team member representation"""
    id: str
    name: str
    role: str = "Team Member"
    email: Optional[str] = None
    avatar: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "avatar": self.avatar,
        }


UNASSIGNED = TeamMember(id="unassigned", name="Unassigned", role="Unassigned")


@dataclass
class Task:
    """Unified task representation"""
    id: str
    title: str
    status: str = TaskStatus.TODO.value
    priority: str = TaskPriority.MEDIUM.value
    assignee: Optional[TeamMember] = None
    due_date: Optional[date] = None
    tags: List[str] = field(default_factory=list)
    story_points: Optional[float] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "priority": self.priority,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "tags": list(self.tags),
            "storyPoints": self.story_points,
            "type": self.type,
        }


@dataclass
class Metric:
    """Flat key/value project summary"""
    name: str
    value: Union[int, float, str]
    unit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "value": self.value}
        if self.unit:
            data["unit"] = self.unit
        return data


@dataclass
class ProjectData:
    """Canonical project shape produced by every transformer"""
    id: str
    name: str
    platform: str
    description: str = ""
    status: str = "active"
    tasks: List[Task] = field(default_factory=list)
    team: List[TeamMember] = field(default_factory=list)
    metrics: List[Metric] = field(default_factory=list)
    platform_specific: Dict[str, Any] = field(default_factory=dict)

    def metric(self, name: str) -> Optional[Metric]:
        return next((m for m in self.metrics if m.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform,
            "description": self.description,
            "status": self.status,
            "tasks": [task.to_dict() for task in self.tasks],
            "team": [member.to_dict() for member in self.team],
            "metrics": [metric.to_dict() for metric in self.metrics],
            "platformSpecific": self.platform_specific,
        }


# ==================== Raw payloads ====================

@dataclass
class JiraProjectPayload:
    project: Dict[str, Any]
    issues: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class JiraPayload:
    domain: str
    projects: List[JiraProjectPayload] = field(default_factory=list)
    platform: Literal["jira"] = "jira"

    def is_empty(self) -> bool:
        return not self.projects


@dataclass
class MondayPayload:
    boards: List[Dict[str, Any]] = field(default_factory=list)
    platform: Literal["monday"] = "monday"

    def is_empty(self) -> bool:
        return not self.boards


@dataclass
class TrofosProjectPayload:
    project: Dict[str, Any]
    backlog_items: List[Dict[str, Any]] = field(default_factory=list)
    sprints: List[Dict[str, Any]] = field(default_factory=list)
    resources: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class TrofosPayload:
    server_url: str
    projects: List[TrofosProjectPayload] = field(default_factory=list)
    platform: Literal["trofos"] = "trofos"

    def is_empty(self) -> bool:
        return not self.projects


RawPayload = Union[JiraPayload, MondayPayload, TrofosPayload]


# ==================== Platform configuration ====================

class _PlatformConfig(BaseModel):
    """Common behaviour for per-platform credential models"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class JiraConfig(_PlatformConfig):
    """Jira Cloud credentials"""
    domain: str
    email: str
    api_token: str = Field(validation_alias=AliasChoices("apiToken", "api_token"))
    project_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("projectKey", "project_key")
    )

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("must be a valid email address")
        return value

    @field_validator("project_key")
    @classmethod
    def _check_project_key(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not JIRA_PROJECT_KEY_PATTERN.fullmatch(value):
            raise ValueError("must be a Jira project key or numeric project id")
        return value


class MondayConfig(_PlatformConfig):
    """Monday.com credentials"""
    api_key: str = Field(validation_alias=AliasChoices("apiKey", "apiToken", "api_key"))
    board_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("boardId", "board_id")
    )

    @field_validator("board_id", mode="before")
    @classmethod
    def _board_id_as_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class TrofosConfig(_PlatformConfig):
    """TROFOS credentials"""
    server_url: str = Field(validation_alias=AliasChoices("serverUrl", "server_url"))
    api_key: str = Field(validation_alias=AliasChoices("apiKey", "api_key"))
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("projectId", "project_id")
    )

    @field_validator("server_url")
    @classmethod
    def _check_server_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("project_id", mode="before")
    @classmethod
    def _project_id_as_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


PlatformConfig = Union[JiraConfig, MondayConfig, TrofosConfig]
