"""
Data transformers

One transformer per platform, each owning its own status and priority
mapping tables, all producing canonical ``ProjectData``.
"""
from typing import Union

from platform_integrations.errors import ConfigurationError
from platform_integrations.platforms.models import Platform

from .common import filter_valid_projects, is_valid_project
from .jira import JiraTransformer
from .monday import MondayTransformer
from .trofos import TrofosTransformer

Transformer = Union[JiraTransformer, MondayTransformer, TrofosTransformer]

TRANSFORMERS = {
    Platform.JIRA: JiraTransformer,
    Platform.MONDAY: MondayTransformer,
    Platform.TROFOS: TrofosTransformer,
}


def get_transformer(platform: Union[Platform, str]) -> Transformer:
    """Return a new transformer for ``platform``."""
    try:
        return TRANSFORMERS[Platform(platform)]()
    except ValueError:
        raise ConfigurationError(f"No transformer for platform: {platform}")


__all__ = [
    "JiraTransformer",
    "MondayTransformer",
    "TrofosTransformer",
    "Transformer",
    "filter_valid_projects",
    "get_transformer",
    "is_valid_project",
]
