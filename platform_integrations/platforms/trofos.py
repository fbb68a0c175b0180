"""
TROFOS Client

Fetches projects, sprints, backlog items and members from the TROFOS
external REST API (``{serverUrl}/v1``, ``x-api-key`` header).

The backlog, sprint and member endpoints are independent; they are
fetched concurrently and joined by the transformer. Deployments expose
them under different names, so each is tried against an ordered list of
paths (``/sprint`` before ``/sprints``) and the first non-empty answer
wins. When no backlog endpoint answers, backlog items embedded in the
sprints are used. A failing secondary fetch yields an empty list instead
of failing the whole project.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from platform_integrations.config import Settings, get_settings
from platform_integrations.errors import AuthenticationError, IntegrationError, NotFoundError
from platform_integrations.utils.encryption import mask_secret
from platform_integrations.utils.logger import log_upstream_call

from .http import UpstreamSession
from .models import Platform, TrofosConfig, TrofosPayload, TrofosProjectPayload

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    401: "Invalid x-api-key. Please check your TROFOS API key",
    403: "TROFOS API key does not have access to this project",
    404: "TROFOS project not found. Please check the project ID",
    "dns": "Cannot resolve TROFOS server '{host}'. Please check the server URL",
    "refused": "Connection refused by TROFOS server '{host}'. Please check the server URL",
}

EMBEDDED_BACKLOG_KEYS = ("backlogs", "backlog_items", "backlogItems", "items")

# Per-project endpoints, tried in order; TROFOS deployments differ in which they serve
SPRINT_ENDPOINTS = ("sprint", "sprints", "iterations")
BACKLOG_ENDPOINTS = ("backlog", "items", "backlogs")
MEMBER_ENDPOINTS = ("members", "team", "resources", "users")


def unwrap(data: Any) -> Any:
    """Strip the ``data`` / ``data.data`` envelopes TROFOS wraps responses in."""
    for _ in range(2):
        if isinstance(data, dict) and "data" in data:
            data = data["data"]
    return data


def as_list(data: Any, *keys: str) -> List[Dict[str, Any]]:
    """Coerce an unwrapped response into a list of dicts."""
    data = unwrap(data)
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                data = data[key]
                break
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def sprint_list(data: Any) -> List[Dict[str, Any]]:
    """Sprint responses are a list, a ``sprints`` wrapper, or one bare sprint."""
    data = unwrap(data)
    if isinstance(data, dict) and not isinstance(data.get("sprints"), list):
        return [data] if "id" in data else []
    return as_list(data, "sprints")


class TrofosClient:
    """TROFOS client bound to one connection's server and API key."""

    platform = Platform.TROFOS.value

    def __init__(
        self,
        config: TrofosConfig,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.settings = settings or get_settings()
        self._transport = transport
        self._headers = {
            "x-api-key": config.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        logger.debug(f"TROFOS client for {config.server_url} (key {mask_secret(config.api_key)})")

    @property
    def base_url(self) -> str:
        return f"{self.config.server_url}/v1"

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def _session(self) -> UpstreamSession:
        return UpstreamSession(
            "TROFOS",
            self.base_url,
            self._headers,
            timeout=self.settings.request_timeout,
            max_retries=self.settings.upstream_max_retries,
            retry_delay=self.settings.upstream_retry_delay,
            error_messages=ERROR_MESSAGES,
            transport=self._transport,
        )

    @log_upstream_call
    async def test_connection(self) -> bool:
        async with self._session() as upstream:
            if self.config.project_id:
                project = unwrap(await upstream.request("GET", f"/project/{self.config.project_id}"))
                if not project:
                    raise NotFoundError(ERROR_MESSAGES[404])
            else:
                await self._list_projects(upstream, page_size=1)
        logger.info(f"TROFOS connection verified for {self.config.server_url}")
        return True

    @log_upstream_call
    async def fetch_project_data(self, project_id: Optional[str] = None) -> Optional[TrofosPayload]:
        project_id = project_id or self.config.project_id

        async with self._session() as upstream:
            if project_id:
                payload = await self._fetch_project(upstream, str(project_id))
                return TrofosPayload(server_url=self.config.server_url, projects=[payload])

            listed = await self._list_projects(upstream, page_size=self.settings.max_projects_per_fetch)
            ids = [str(p.get("id") or p.get("projectId")) for p in listed if p.get("id") or p.get("projectId")]
            if not ids:
                return None

            results = await asyncio.gather(
                *(self._fetch_project(upstream, pid) for pid in ids),
                return_exceptions=True,
            )

        projects: List[TrofosProjectPayload] = []
        for pid, result in zip(ids, results):
            if isinstance(result, AuthenticationError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"Skipping TROFOS project {pid}: {result}")
                continue
            projects.append(result)
        return TrofosPayload(server_url=self.config.server_url, projects=projects)

    async def _list_projects(self, upstream: UpstreamSession, page_size: int) -> List[Dict[str, Any]]:
        data = await upstream.request(
            "POST", "/project/list", json={"option": "all", "pageIndex": 0, "pageSize": page_size}
        )
        return as_list(data, "projects")

    async def _fetch_project(self, upstream: UpstreamSession, project_id: str) -> TrofosProjectPayload:
        project = unwrap(await upstream.request("GET", f"/project/{project_id}"))
        if not isinstance(project, dict) or not project:
            raise NotFoundError(f"TROFOS project {project_id} not found")

        backlog_items, sprints, resources = await asyncio.gather(
            self._secondary(upstream, project_id, "backlog", self._fetch_backlog),
            self._secondary(upstream, project_id, "sprints", self._fetch_sprints),
            self._secondary(upstream, project_id, "members", self._fetch_members),
        )

        if not backlog_items:
            backlog_items = [
                item
                for sprint in sprints
                for key in EMBEDDED_BACKLOG_KEYS
                for item in (sprint.get(key) or [])
                if isinstance(item, dict)
            ]

        logger.info(
            f"Fetched TROFOS project {project_id}: {len(backlog_items)} backlog items, "
            f"{len(sprints)} sprints, {len(resources)} members"
        )
        return TrofosProjectPayload(
            project=project,
            backlog_items=backlog_items,
            sprints=sprints,
            resources=resources,
        )

    async def _secondary(self, upstream, project_id, name, fetch) -> List[Dict[str, Any]]:
        """Run a secondary fetch, degrading to an empty list on failure."""
        try:
            return await fetch(upstream, project_id)
        except AuthenticationError:
            raise
        except Exception as e:
            logger.warning(f"TROFOS {name} unavailable for project {project_id}: {e}")
            return []

    async def _first_available(
        self,
        upstream: UpstreamSession,
        project_id: str,
        suffixes: Sequence[str],
        extract: Callable[[Any], List[Dict[str, Any]]],
    ) -> List[Dict[str, Any]]:
        """Try ``/project/{id}/{suffix}`` for each suffix; the first non-empty list wins."""
        for suffix in suffixes:
            params = None
            if suffix == "backlog":
                params = {
                    "pageNum": 1,
                    "pageSize": self.settings.trofos_page_size,
                    "sort": "priority",
                    "direction": "DESC",
                }
            try:
                data = await upstream.request("GET", f"/project/{project_id}/{suffix}", params=params)
            except AuthenticationError:
                raise
            except IntegrationError as e:
                logger.debug(f"TROFOS endpoint /project/{project_id}/{suffix} failed: {e}")
                continue
            items = extract(data)
            if items:
                logger.debug(f"TROFOS /project/{project_id}/{suffix} returned {len(items)} records")
                return items
        return []

    async def _fetch_backlog(self, upstream: UpstreamSession, project_id: str) -> List[Dict[str, Any]]:
        return await self._first_available(
            upstream, project_id, BACKLOG_ENDPOINTS, lambda data: as_list(data, "backlogs", "items")
        )

    async def _fetch_sprints(self, upstream: UpstreamSession, project_id: str) -> List[Dict[str, Any]]:
        return await self._first_available(upstream, project_id, SPRINT_ENDPOINTS, sprint_list)

    async def _fetch_members(self, upstream: UpstreamSession, project_id: str) -> List[Dict[str, Any]]:
        return await self._first_available(
            upstream, project_id, MEMBER_ENDPOINTS, lambda data: as_list(data, "members", "users")
        )
