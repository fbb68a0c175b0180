"""
Credential Encryption Utilities

Uses Fernet symmetric encryption for connection configuration storage.
The key is handed to ``ConfigCipher`` by whoever builds it; nothing in
this module reads settings.
"""

import binascii
import json
import logging
from typing import Any, Dict, Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from platform_integrations.errors import ConfigurationError, DecryptionError

logger = logging.getLogger(__name__)


class ConfigCipher:
    """Encrypts and decrypts platform configuration dictionaries."""

    def __init__(self, key: Optional[Union[str, bytes]]):
        if not key:
            # Generate a key for development (not recommended for production)
            logger.warning(
                "No encryption key set. Using a temporary key; stored connections "
                "will not be readable after restart. Set PLATFORM_INTEGRATIONS_ENCRYPTION_KEY!"
            )
            key = Fernet.generate_key()

        # Ensure key is bytes
        if isinstance(key, str):
            key = key.encode()

        try:
            self._fernet = Fernet(key)
        except (ValueError, binascii.Error) as e:
            raise ConfigurationError(
                "Encryption key must be 32 url-safe base64-encoded bytes"
            ) from e

    def encrypt_config(self, config: Dict[str, Any]) -> str:
        """
        Encrypt a configuration dictionary for storage.

        Args:
            config: Plain platform configuration

        Returns:
            Fernet token as text
        """
        plaintext = json.dumps(config, separators=(",", ":"), sort_keys=True)
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt_config(self, token: str) -> Dict[str, Any]:
        """
        Decrypt a stored configuration.

        Raises:
            DecryptionError: token tampered, wrong key, or not a JSON object
        """
        if not token:
            raise DecryptionError("No stored credentials")

        try:
            decrypted = self._fernet.decrypt(token.encode())
        except InvalidToken:
            logger.error("Invalid encryption token - data may be corrupted or wrong encryption key")
            raise DecryptionError()

        try:
            config = json.loads(decrypted.decode())
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.error("Decrypted credentials are not valid JSON")
            raise DecryptionError()

        if not isinstance(config, dict):
            logger.error("Decrypted credentials are not an object")
            raise DecryptionError()
        return config


def mask_secret(secret: Optional[str]) -> str:
    """
    Mask a secret for display (show last 4 characters).

    Returns:
        Masked string like "••••••••abcd"
    """
    if not secret or len(secret) < 8:
        return "••••••••"

    return "••••••••" + secret[-4:]
