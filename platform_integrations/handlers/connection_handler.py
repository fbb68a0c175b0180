# Platform Integrations Connection Handler
"""
Connection orchestrator for the Platform Integrations service.

Resolves a (user, connection) pair to canonical project data:
ownership-scoped lookup -> status check -> decrypt -> fresh client ->
fetch -> transform -> output validation. It also owns the connection
lifecycle (create, test, sync, delete).
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from platform_integrations.config import Settings, get_settings
from platform_integrations.database.credential_store import CredentialStore
from platform_integrations.database.models import Connection
from platform_integrations.errors import (
    ConnectionInactiveError,
    ConnectionNotFoundError,
    IntegrationError,
    TransformationError,
)
from platform_integrations.platforms.base import PlatformClient
from platform_integrations.platforms.factory import (
    create_platform_client,
    get_platform_info,
    parse_platform,
    parse_platform_config,
)
from platform_integrations.platforms.models import ConnectionStatus, ProjectData, RawPayload
from platform_integrations.transformers import filter_valid_projects, get_transformer
from platform_integrations.utils.encryption import ConfigCipher

from .results import ConnectionTestResult, ProjectDataResult, SyncResult

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., PlatformClient]


class ConnectionHandler:
    """
    Orchestrates platform connections for one request.

    A handler is cheap: build one per request with that request's DB
    session. Nothing is cached between calls, so every operation uses a
    new client built from freshly decrypted credentials.
    """

    def __init__(
        self,
        db_session: Session,
        cipher: ConfigCipher,
        settings: Optional[Settings] = None,
        client_factory: ClientFactory = create_platform_client,
        transformer_factory: Callable[[str], Any] = get_transformer,
    ):
        """
        Initialize the handler.

        Args:
            db_session: Database session for the credential store
            cipher: Cipher holding the configured encryption key
            settings: Service settings (timeouts, page sizes)
            client_factory: Builds a platform client from (platform, config)
            transformer_factory: Builds a transformer for a platform
        """
        self.settings = settings or get_settings()
        self.store = CredentialStore(db_session, cipher)
        self.client_factory = client_factory
        self.transformer_factory = transformer_factory

    # ==================== Connection Management ====================

    def list_connections(self, user_id: str) -> List[Connection]:
        return self.store.list_for_user(user_id)

    def get_connection(self, user_id: str, connection_id: str) -> Optional[Connection]:
        """Return the connection if ``user_id`` owns it, else None."""
        return self.store.load(user_id, connection_id)

    def _require_connection(self, user_id: str, connection_id: str) -> Connection:
        connection = self.store.load(user_id, connection_id)
        if connection is None:
            raise ConnectionNotFoundError()
        return connection

    async def create_connection(
        self,
        user_id: str,
        name: str,
        platform: str,
        config: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Connection:
        """
        Validate, store and immediately test a new connection.

        The connection is saved as disconnected and then moved to
        connected or error depending on the connectivity test.

        Raises:
            ConfigurationError: unsupported platform, invalid config or duplicate name
        """
        platform = parse_platform(platform)
        parse_platform_config(platform, config)

        connection_id = self.store.save(user_id, platform, config, name=name, metadata=metadata)
        connection = self._require_connection(user_id, connection_id)

        result = await self._run_test(platform.value, config)
        self._record_test(connection, result)
        logger.info(
            f"Created {platform.value} connection {connection.id} for user {user_id} "
            f"(status: {connection.status})"
        )
        return connection

    def delete_connection(self, user_id: str, connection_id: str) -> None:
        if not self.store.delete(user_id, connection_id):
            raise ConnectionNotFoundError()

    # ==================== Connectivity ====================

    async def _run_test(self, platform: str, config: Dict[str, Any]) -> ConnectionTestResult:
        try:
            client = self.client_factory(platform, config, settings=self.settings)
            await client.test_connection()
        except IntegrationError as e:
            logger.warning(f"{platform} connection test failed: {e.message}")
            return ConnectionTestResult(success=False, message=e.message)
        except Exception as e:
            logger.error(f"Unexpected error testing {platform} connection: {e}", exc_info=True)
            return ConnectionTestResult(success=False, message="Connection test failed unexpectedly")
        return ConnectionTestResult(success=True, message="Connection successful")

    def _record_test(self, connection: Connection, result: ConnectionTestResult) -> None:
        status = ConnectionStatus.CONNECTED if result.success else ConnectionStatus.ERROR
        self.store.update_state(
            connection,
            status=status,
            last_sync_error=None if result.success else result.message,
        )
        result.status = connection.status

    async def test_connection_config(self, platform: str, config: Dict[str, Any]) -> ConnectionTestResult:
        """Test credentials before (or without) saving them. Never raises."""
        try:
            platform = parse_platform(platform).value
            parse_platform_config(platform, config)
        except IntegrationError as e:
            return ConnectionTestResult(success=False, message=e.message)
        return await self._run_test(platform, config)

    async def test_connection(self, user_id: str, connection_id: str) -> ConnectionTestResult:
        """Re-test a stored connection and persist the resulting status."""
        connection = self._require_connection(user_id, connection_id)
        try:
            config = self.store.get_config(connection)
        except IntegrationError as e:
            result = ConnectionTestResult(success=False, message=e.message)
        else:
            result = await self._run_test(connection.platform, config)
        self._record_test(connection, result)
        return result

    # ==================== Project Data ====================

    def _transform(self, platform: str, raw: Optional[RawPayload]) -> List[ProjectData]:
        if raw is None or raw.is_empty():
            logger.info(f"{platform} returned no project data")
            return []

        transformer = self.transformer_factory(platform)
        try:
            projects = transformer.transform(raw)
        except TransformationError:
            raise
        except Exception as e:
            logger.error(f"{platform} transformer failed: {e}", exc_info=True)
            raise TransformationError(f"Could not process {platform} data") from e

        return filter_valid_projects(projects, platform)

    async def get_project_data(
        self,
        user_id: str,
        connection_id: str,
        project_id: Optional[str] = None,
    ) -> List[ProjectData]:
        """
        Fetch and normalize project data for an owned, connected connection.

        Returns an empty list when the platform has nothing to return.

        Raises:
            ConnectionNotFoundError: no such connection for this user
            ConnectionInactiveError: connection is not connected (no upstream call is made)
            DecryptionError: stored credentials unreadable
            AuthenticationError, NotFoundError, UpstreamUnavailableError: from the platform
            TransformationError: payload could not be normalized
        """
        connection = self._require_connection(user_id, connection_id)
        if connection.status != ConnectionStatus.CONNECTED.value:
            raise ConnectionInactiveError(connection.status)

        config = self.store.get_config(connection)
        client = self.client_factory(connection.platform, config, settings=self.settings)
        raw = await client.fetch_project_data(project_id)

        projects = self._transform(connection.platform, raw)
        logger.info(
            f"Returning {len(projects)} {connection.platform} project(s) "
            f"for connection {connection.id}"
        )
        return projects

    async def get_project_data_result(
        self,
        user_id: str,
        connection_id: str,
        project_id: Optional[str] = None,
    ) -> ProjectDataResult:
        """Same as ``get_project_data`` but reports failures as a tagged result."""
        try:
            projects = await self.get_project_data(user_id, connection_id, project_id)
        except IntegrationError as e:
            return ProjectDataResult.failure(e)
        return ProjectDataResult.ok(projects)

    async def sync_connection(self, user_id: str, connection_id: str) -> SyncResult:
        """
        Re-test and re-fetch a connection, refreshing its project count.

        Platform and credential failures are recorded on the connection
        and reported in the result rather than raised.
        """
        connection = self._require_connection(user_id, connection_id)

        try:
            config = self.store.get_config(connection)
            client = self.client_factory(connection.platform, config, settings=self.settings)
            await client.test_connection()
            projects = self._transform(connection.platform, await client.fetch_project_data())
        except IntegrationError as e:
            self.store.update_state(connection, status=ConnectionStatus.ERROR, last_sync_error=e.message)
            logger.warning(f"Sync failed for connection {connection.id}: {e.message}")
            return SyncResult(
                success=False,
                status=connection.status,
                message=e.message,
                project_count=connection.project_count or 0,
                last_sync=connection.last_sync,
            )
        except Exception as e:
            self.store.update_state(connection, status=ConnectionStatus.ERROR, last_sync_error="Sync failed unexpectedly")
            logger.error(f"Unexpected sync failure for connection {connection.id}: {e}", exc_info=True)
            raise

        now = datetime.utcnow()
        self.store.update_state(
            connection,
            status=ConnectionStatus.CONNECTED,
            last_sync=now,
            last_sync_error=None,
            project_count=len(projects),
        )
        logger.info(f"Synced connection {connection.id}: {len(projects)} project(s)")
        return SyncResult(
            success=True,
            status=connection.status,
            message="Sync completed successfully",
            project_count=len(projects),
            last_sync=now,
        )

    # ==================== Health & Info ====================

    async def health_check(self, user_id: str, connection_id: str) -> Dict[str, Any]:
        """Check a connection's credentials, configuration and upstream reachability."""
        connection = self._require_connection(user_id, connection_id)
        checks = {"credentials": "ok", "configuration": "ok", "upstream": "skipped"}
        message = "Connection is healthy"

        try:
            config = self.store.get_config(connection)
        except IntegrationError as e:
            checks["credentials"] = "failed"
            checks["configuration"] = "skipped"
            message = e.message
        else:
            try:
                parse_platform_config(connection.platform, config)
            except IntegrationError as e:
                checks["configuration"] = "failed"
                message = e.message
            else:
                result = await self._run_test(connection.platform, config)
                checks["upstream"] = "ok" if result.success else "failed"
                if not result.success:
                    message = result.message

        healthy = all(value == "ok" for value in checks.values())
        return {
            "connectionId": connection.id,
            "platform": connection.platform,
            "status": connection.status,
            "healthy": healthy,
            "checks": checks,
            "message": message,
            "lastSync": connection.last_sync.isoformat() if connection.last_sync else None,
            "checkedAt": datetime.utcnow().isoformat(),
        }

    def get_platform_info(self, platform: str) -> Dict[str, Any]:
        return get_platform_info(platform)
