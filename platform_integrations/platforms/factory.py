# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""
Platform Client Factory

Factory functions to validate platform configurations and create
platform client instances from them.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from platform_integrations.config import Settings
from platform_integrations.errors import ConfigurationError

from .base import PlatformClient
from .jira import JiraClient
from .models import JiraConfig, MondayConfig, Platform, PlatformConfig, TrofosConfig
from .monday import MondayClient
from .trofos import TrofosClient

logger = logging.getLogger(__name__)

CONFIG_MODELS = {
    Platform.JIRA: JiraConfig,
    Platform.MONDAY: MondayConfig,
    Platform.TROFOS: TrofosConfig,
}

PLATFORM_INFO: Dict[Platform, Dict[str, Any]] = {
    Platform.JIRA: {
        "name": "Jira",
        "description": "Atlassian Jira Cloud projects and issues",
        "authType": "Basic (email + API token)",
        "requiredFields": ["domain", "email", "apiToken"],
        "optionalFields": ["projectKey"],
        "capabilities": ["projects", "issues", "team", "metrics"],
        "apiVersion": "REST v3",
        "documentation": "https://developer.atlassian.com/cloud/jira/platform/rest/v3/",
    },
    Platform.MONDAY: {
        "name": "Monday.com",
        "description": "Monday.com boards, items and groups",
        "authType": "API key",
        "requiredFields": ["apiKey"],
        "optionalFields": ["boardId"],
        "capabilities": ["boards", "items", "team", "metrics"],
        "apiVersion": "GraphQL v2",
        "documentation": "https://developer.monday.com/api-reference/",
    },
    Platform.TROFOS: {
        "name": "TROFOS",
        "description": "TROFOS projects, sprints and backlog",
        "authType": "API key (x-api-key)",
        "requiredFields": ["serverUrl", "apiKey"],
        "optionalFields": ["projectId"],
        "capabilities": ["projects", "backlog", "sprints", "team", "metrics"],
        "apiVersion": "External API v1",
        "documentation": None,
    },
}


def parse_platform(platform: Any) -> Platform:
    """Coerce user input into a ``Platform``."""
    try:
        return Platform(str(platform).lower().strip())
    except ValueError:
        supported = ", ".join(p.value for p in Platform)
        raise ConfigurationError(
            f"Unsupported platform: {platform}. Supported platforms: {supported}"
        )


def parse_platform_config(platform: Any, config: Optional[Dict[str, Any]]) -> PlatformConfig:
    """
    Validate a raw configuration dictionary for ``platform``.

    Raises:
        ConfigurationError: unknown platform or missing/malformed fields
    """
    platform = parse_platform(platform)
    if not isinstance(config, dict):
        raise ConfigurationError(f"{platform.display_name} configuration must be an object")

    try:
        return CONFIG_MODELS[platform].model_validate(config)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "config"
            problems.append(f"{field}: {error['msg']}")
        raise ConfigurationError(
            f"Invalid {platform.display_name} configuration: {'; '.join(problems)}",
            {"errors": problems},
        )


def validate_platform_config(platform: Any, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return ``{"valid": bool, "message": str}`` without raising."""
    try:
        parse_platform_config(platform, config)
    except ConfigurationError as e:
        return {"valid": False, "message": e.message}
    return {"valid": True, "message": "Configuration is valid"}


def create_platform_client(
    platform: Any,
    config: Dict[str, Any],
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PlatformClient:
    """
    Create a new platform client from a configuration dictionary.

    A new client is built for every call; clients are never shared
    between connections.

    Args:
        platform: Platform identifier ("jira", "monday", "trofos")
        config: Decrypted connection configuration
        settings: Service settings (timeouts, page sizes)
        transport: Optional httpx transport, used by tests

    Returns:
        Client implementing ``PlatformClient``

    Raises:
        ConfigurationError: unknown platform or invalid configuration
    """
    platform = parse_platform(platform)
    parsed = parse_platform_config(platform, config)

    if platform == Platform.JIRA:
        return JiraClient(parsed, settings=settings, transport=transport)
    elif platform == Platform.MONDAY:
        return MondayClient(parsed, settings=settings, transport=transport)
    elif platform == Platform.TROFOS:
        return TrofosClient(parsed, settings=settings, transport=transport)
    else:
        raise ConfigurationError(f"Unsupported platform: {platform.value}")


def get_supported_platforms() -> List[Dict[str, Any]]:
    return [
        {"id": platform.value, "name": info["name"], "description": info["description"]}
        for platform, info in PLATFORM_INFO.items()
    ]


def get_platform_info(platform: Any) -> Dict[str, Any]:
    platform = parse_platform(platform)
    return {"id": platform.value, **PLATFORM_INFO[platform]}
