# Platform Integrations Request Models
"""
Pydantic models for API request validation.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field

from platform_integrations.platforms.models import Platform


class CreateConnectionRequest(BaseModel):
    """Request for creating a connection."""
    name: str = Field(min_length=1, max_length=255)
    platform: Platform
    config: dict[str, Any]
    metadata: Optional[dict[str, Any]] = None


class ConfigTestRequest(BaseModel):
    """Request for testing credentials without saving them."""
    platform: Platform
    config: dict[str, Any]
