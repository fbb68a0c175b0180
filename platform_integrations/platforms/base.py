"""
Capability interface for platform clients.

Clients share no state or base class; each is built fresh from one
connection's configuration and satisfies this protocol structurally.
Adding a platform means adding a client, a transformer and a factory
entry; nothing else in the service branches on platform.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import RawPayload


@runtime_checkable
class PlatformClient(Protocol):
    """Protocol for fetching raw project data from one platform account."""

    platform: str

    @property
    def base_url(self) -> str:
        """API root this client talks to."""
        ...

    @property
    def headers(self) -> dict[str, str]:
        """Request headers, including this connection's credentials."""
        ...

    async def test_connection(self) -> bool:
        """
        Verify the credentials against a cheap authenticated endpoint.

        Returns True on success and raises AuthenticationError,
        NotFoundError or UpstreamUnavailableError otherwise.
        """
        ...

    async def fetch_project_data(self, project_id: Optional[str] = None) -> Optional[RawPayload]:
        """
        Fetch the raw payload for one project, or for the configured or
        discoverable projects when ``project_id`` is None. Returns None
        or an empty payload when the account has nothing to show.
        """
        ...
