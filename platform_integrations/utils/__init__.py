"""Utility helpers for the Platform Integrations service."""

from .encryption import ConfigCipher, mask_secret
from .logger import log_upstream_call, setup_logging

__all__ = ["ConfigCipher", "mask_secret", "log_upstream_call", "setup_logging"]
