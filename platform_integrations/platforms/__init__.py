"""
Platform clients

Jira, Monday.com and TROFOS clients behind the ``PlatformClient``
capability interface, plus the factory that builds them.
"""
from .base import PlatformClient
from .factory import (
    create_platform_client,
    get_platform_info,
    get_supported_platforms,
    parse_platform,
    parse_platform_config,
    validate_platform_config,
)
from .jira import JiraClient
from .models import (
    ConnectionStatus,
    Metric,
    Platform,
    ProjectData,
    RawPayload,
    Task,
    TeamMember,
    UNASSIGNED,
)
from .monday import MondayClient
from .trofos import TrofosClient

__all__ = [
    "PlatformClient",
    "JiraClient",
    "MondayClient",
    "TrofosClient",
    "create_platform_client",
    "get_platform_info",
    "get_supported_platforms",
    "parse_platform",
    "parse_platform_config",
    "validate_platform_config",
    "ConnectionStatus",
    "Metric",
    "Platform",
    "ProjectData",
    "RawPayload",
    "Task",
    "TeamMember",
    "UNASSIGNED",
]
