# Platform Integrations Credential Store
"""
Per-user storage of platform connections with encrypted configuration.

Every query is scoped by both connection id and user id, so a caller can
never see or modify another user's connection, even with a valid id.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from platform_integrations.database.models import Connection
from platform_integrations.errors import ConfigurationError
from platform_integrations.platforms.models import ConnectionStatus, Platform
from platform_integrations.utils.encryption import ConfigCipher

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class CredentialStore:
    """Encrypted, tenant-scoped repository of ``Connection`` rows."""

    def __init__(self, db_session: Session, cipher: ConfigCipher):
        self.db = db_session
        self.cipher = cipher

    def save(
        self,
        user_id: str,
        platform: Platform | str,
        config: dict[str, Any],
        name: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        """Encrypt ``config`` and persist a new disconnected connection."""
        platform = Platform(platform)
        name = name or f"{platform.display_name} connection"
        connection = Connection(
            user_id=user_id,
            name=name,
            platform=platform.value,
            encrypted_config=self.cipher.encrypt_config(config),
            status=ConnectionStatus.DISCONNECTED.value,
            project_count=0,
            connection_metadata=metadata or {},
        )
        self.db.add(connection)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConfigurationError(
                f"A {platform.display_name} connection named '{name}' already exists"
            ) from e
        self.db.refresh(connection)
        logger.info(f"Saved {platform.value} connection {connection.id} for user {user_id}")
        return connection.id

    def load(self, user_id: str, connection_id: str) -> Optional[Connection]:
        """Return the connection only if ``user_id`` owns it."""
        return self.db.query(Connection).filter(
            Connection.id == connection_id,
            Connection.user_id == user_id,
        ).first()

    def list_for_user(self, user_id: str) -> list[Connection]:
        return self.db.query(Connection).filter(
            Connection.user_id == user_id
        ).order_by(Connection.created_at.desc()).all()

    def get_config(self, connection: Connection) -> dict[str, Any]:
        """Decrypt the connection's configuration. Raises DecryptionError."""
        return self.cipher.decrypt_config(connection.encrypted_config)

    def update_state(
        self,
        connection: Connection,
        status: ConnectionStatus | str | None = None,
        last_sync: Optional[datetime] = _UNSET,
        last_sync_error: Optional[str] = _UNSET,
        project_count: Optional[int] = None,
    ) -> Connection:
        """Apply a status/sync update in a single commit."""
        if status is not None:
            connection.status = ConnectionStatus(status).value
        if last_sync is not _UNSET:
            connection.last_sync = last_sync
        if last_sync_error is not _UNSET:
            connection.last_sync_error = last_sync_error
        if project_count is not None:
            connection.project_count = project_count
        connection.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(connection)
        return connection

    def delete(self, user_id: str, connection_id: str) -> bool:
        """Delete an owned connection. Returns False when nothing matched."""
        deleted = self.db.query(Connection).filter(
            Connection.id == connection_id,
            Connection.user_id == user_id,
        ).delete(synchronize_session=False)
        self.db.commit()
        if deleted:
            logger.info(f"Deleted connection {connection_id} for user {user_id}")
        return bool(deleted)
