"""
Unit tests for credential encryption
"""

import base64

import pytest
from cryptography.fernet import Fernet

from platform_integrations.errors import ConfigurationError, DecryptionError
from platform_integrations.utils.encryption import ConfigCipher, mask_secret


def _tamper(token: str) -> str:
    """Flip one ciphertext byte while keeping the token well-formed base64."""
    raw = bytearray(base64.urlsafe_b64decode(token.encode()))
    raw[30] ^= 0x01
    return base64.urlsafe_b64encode(bytes(raw)).decode()


class TestConfigCipher:
    """Tests for ConfigCipher."""

    def test_round_trip(self, cipher, jira_config):
        """Test decrypting an encrypted config returns the original."""
        token = cipher.encrypt_config(jira_config)
        assert cipher.decrypt_config(token) == jira_config

    def test_ciphertext_hides_secrets(self, cipher, jira_config):
        """Test the stored token does not contain the plaintext token."""
        token = cipher.encrypt_config(jira_config)
        assert "jira-token-1234" not in token
        assert "pm@acme.com" not in token

    def test_tampered_ciphertext_raises(self, cipher, jira_config):
        """Test a modified token fails closed."""
        token = cipher.encrypt_config(jira_config)
        with pytest.raises(DecryptionError):
            cipher.decrypt_config(_tamper(token))

    def test_wrong_key_raises(self, cipher, jira_config):
        """Test a token from another key is rejected."""
        token = cipher.encrypt_config(jira_config)
        other = ConfigCipher(Fernet.generate_key())
        with pytest.raises(DecryptionError):
            other.decrypt_config(token)

    def test_garbage_token_raises(self, cipher):
        with pytest.raises(DecryptionError):
            cipher.decrypt_config("not-a-token")

    def test_empty_token_raises(self, cipher):
        with pytest.raises(DecryptionError):
            cipher.decrypt_config("")

    def test_non_object_plaintext_raises(self, fernet_key):
        """Test a valid token whose plaintext is not a JSON object is rejected."""
        token = Fernet(fernet_key.encode()).encrypt(b"[1, 2, 3]").decode()
        with pytest.raises(DecryptionError):
            ConfigCipher(fernet_key).decrypt_config(token)

    def test_malformed_key_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfigCipher("too-short")

    def test_empty_key_uses_temporary_key(self, monday_config):
        """Test an empty key still encrypts (development mode)."""
        cipher = ConfigCipher("")
        assert cipher.decrypt_config(cipher.encrypt_config(monday_config)) == monday_config

    def test_decryption_error_is_configuration_error(self, cipher):
        with pytest.raises(ConfigurationError):
            cipher.decrypt_config("not-a-token")


class TestMaskSecret:
    """Tests for mask_secret."""

    def test_shows_last_four(self):
        assert mask_secret("abcdefgh1234") == "••••••••1234"

    def test_short_or_empty_fully_masked(self):
        assert mask_secret("abc") == "••••••••"
        assert mask_secret(None) == "••••••••"
