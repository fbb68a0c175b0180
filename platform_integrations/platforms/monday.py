"""
Monday.com Client

Fetches boards, items, groups and columns through the Monday.com
GraphQL API (https://developer.monday.com/api-reference/).
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from platform_integrations.config import Settings, get_settings
from platform_integrations.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    UpstreamUnavailableError,
)
from platform_integrations.utils.encryption import mask_secret
from platform_integrations.utils.logger import log_upstream_call

from .http import UpstreamSession
from .models import MondayConfig, MondayPayload, Platform

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    401: "Invalid Monday.com API key",
    403: "Monday.com API key does not have access to this resource",
    429: "Monday.com rate limit exceeded. Please try again later",
    "dns": "Cannot reach Monday.com API ('{host}'). Please check your network connection",
}

ME_QUERY = "query { me { id name email } }"

ITEM_FIELDS = """
    id
    name
    state
    group { id title }
    column_values { id text value type column { id title type } }
    creator { id name }
"""

BOARD_FIELDS = f"""
    id
    name
    description
    state
    board_kind
    owners {{ id name email photo_thumb_small }}
    subscribers {{ id name email photo_thumb_small }}
    groups {{ id title color }}
    columns {{ id title type }}
    items_page(limit: $limit) {{ cursor items {{ {ITEM_FIELDS} }} }}
"""

BOARD_BY_ID_QUERY = f"""
query ($boardIds: [ID!], $limit: Int!) {{
  boards(ids: $boardIds) {{ {BOARD_FIELDS} }}
}}
"""

BOARDS_QUERY = f"""
query ($boardLimit: Int!, $limit: Int!) {{
  boards(limit: $boardLimit, state: active) {{ {BOARD_FIELDS} }}
}}
"""

NEXT_ITEMS_QUERY = f"""
query ($cursor: String!, $limit: Int!) {{
  next_items_page(cursor: $cursor, limit: $limit) {{ cursor items {{ {ITEM_FIELDS} }} }}
}}
"""

_AUTH_ERROR_MARKERS = ("not authenticated", "unauthorized", "invalid token", "authentication")
_NOT_FOUND_MARKERS = ("not found", "resourcenotfound", "invalidboardid", "invaliditemid")
_INVALID_ARGUMENT_MARKERS = (
    "invalidargument",
    "invalid value",
    "argumentliteralsincompatible",
    "parse error",
    "invalidcolumnid",
)


class MondayClient:
    """Monday.com GraphQL client bound to one connection's API key."""

    platform = Platform.MONDAY.value

    def __init__(
        self,
        config: MondayConfig,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.settings = settings or get_settings()
        self._transport = transport
        self._headers = {
            "Authorization": config.api_key,
            "Content-Type": "application/json",
            "API-Version": self.settings.monday_api_version,
        }
        logger.debug(f"Monday.com client with API key {mask_secret(config.api_key)}")

    @property
    def base_url(self) -> str:
        return self.settings.monday_api_url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def _session(self) -> UpstreamSession:
        return UpstreamSession(
            "Monday.com",
            self.base_url,
            self._headers,
            timeout=self.settings.request_timeout,
            max_retries=self.settings.upstream_max_retries,
            retry_delay=self.settings.upstream_retry_delay,
            error_messages=ERROR_MESSAGES,
            transport=self._transport,
        )

    async def _query(
        self,
        upstream: UpstreamSession,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run a GraphQL query and surface GraphQL-level errors."""
        body: Dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables
        result = await upstream.request("POST", "", json=body) or {}

        errors = result.get("errors") or []
        if result.get("error_message"):
            errors = [{"message": result["error_message"], "code": result.get("error_code")}]
        if errors:
            message = "; ".join(str(e.get("message", e)) for e in errors if e)
            codes = " ".join(str(e.get("code") or e.get("extensions", {}).get("code", "")) for e in errors)
            text = f"{message} {codes}".lower()
            if any(marker in text for marker in _AUTH_ERROR_MARKERS):
                raise AuthenticationError("Invalid Monday.com API key", {"graphql_errors": errors})
            if "complexity" in text or "rate limit" in text:
                raise UpstreamUnavailableError(ERROR_MESSAGES[429], {"graphql_errors": errors})
            if any(marker in text for marker in _NOT_FOUND_MARKERS):
                raise NotFoundError(f"Monday.com resource not found: {message}", {"graphql_errors": errors})
            if any(marker in text for marker in _INVALID_ARGUMENT_MARKERS):
                raise ConfigurationError(f"Invalid Monday.com request: {message}", {"graphql_errors": errors})
            raise UpstreamUnavailableError(f"Monday.com API error: {message}", {"graphql_errors": errors})

        return result.get("data") or {}

    @log_upstream_call
    async def test_connection(self) -> bool:
        async with self._session() as upstream:
            data = await self._query(upstream, ME_QUERY)

        me = data.get("me")
        if not me or not me.get("id"):
            raise AuthenticationError("Invalid response from Monday.com API")
        logger.info(f"Monday.com connection verified for {me.get('name') or me.get('email')}")
        return True

    @log_upstream_call
    async def fetch_project_data(self, project_id: Optional[str] = None) -> Optional[MondayPayload]:
        board_id = project_id or self.config.board_id
        page_size = min(self.settings.monday_page_size, self.settings.monday_max_items)

        async with self._session() as upstream:
            if board_id:
                data = await self._query(
                    upstream, BOARD_BY_ID_QUERY, {"boardIds": [str(board_id)], "limit": page_size}
                )
                boards = data.get("boards") or []
                if not boards:
                    raise NotFoundError(f"Board with ID {board_id} not found or not accessible")
            else:
                data = await self._query(
                    upstream,
                    BOARDS_QUERY,
                    {"boardLimit": self.settings.max_projects_per_fetch, "limit": page_size},
                )
                boards = data.get("boards") or []
                if not boards:
                    return None

            for board in boards:
                board["items"] = await self._collect_items(upstream, board, page_size)

        logger.info(f"Fetched {len(boards)} Monday.com board(s)")
        return MondayPayload(boards=boards)

    async def _collect_items(
        self,
        upstream: UpstreamSession,
        board: Dict[str, Any],
        page_size: int,
    ) -> List[Dict[str, Any]]:
        """Follow ``items_page`` cursors up to ``monday_max_items``."""
        max_items = self.settings.monday_max_items
        page = board.pop("items_page", None) or {}
        items: List[Dict[str, Any]] = list(page.get("items") or [])
        cursor = page.get("cursor")

        while cursor and len(items) < max_items:
            data = await self._query(upstream, NEXT_ITEMS_QUERY, {"cursor": cursor, "limit": page_size})
            page = data.get("next_items_page") or {}
            batch = page.get("items") or []
            if not batch:
                break
            items.extend(batch)
            cursor = page.get("cursor")

        return items[:max_items]
