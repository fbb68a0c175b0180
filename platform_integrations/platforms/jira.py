"""
Jira Client

Fetches projects and issues from the Jira Cloud REST API v3.

Jira Cloud API documentation:
https://developer.atlassian.com/cloud/jira/platform/rest/v3/
"""
import asyncio
import base64
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from platform_integrations.config import Settings, get_settings
from platform_integrations.errors import AuthenticationError, ConfigurationError
from platform_integrations.utils.encryption import mask_secret
from platform_integrations.utils.logger import log_upstream_call

from .http import UpstreamSession
from .models import JIRA_PROJECT_KEY_PATTERN, JiraConfig, JiraPayload, JiraProjectPayload, Platform

logger = logging.getLogger(__name__)

ISSUE_FIELDS = [
    "summary", "status", "assignee", "priority", "created", "updated",
    "labels", "issuetype", "duedate", "customfield_10016",
]

ERROR_MESSAGES = {
    401: "Invalid email or API token",
    403: "API token does not have sufficient permissions",
    404: "Jira instance or project not found. Please check your domain and project key",
    "dns": "Cannot resolve domain '{host}'. Please check your Jira domain",
    "refused": "Connection refused by '{host}'. Please check your Jira domain",
}


def normalize_jira_domain(domain: str) -> str:
    """
    Reduce user input to a bare Jira host name.

    ``https://Acme.atlassian.net/jira/`` and ``acme`` both become
    ``acme.atlassian.net``.
    """
    host = re.sub(r"^https?://", "", (domain or "").strip().lower())
    host = host.split("/")[0]
    if not host:
        raise ConfigurationError("Jira domain is required")
    if "." not in host:
        host = f"{host}.atlassian.net"
    return host


def validate_project_key(project_key: Any) -> str:
    """Return ``project_key`` as a JQL- and path-safe key, or raise ConfigurationError."""
    key = str(project_key).strip()
    if not JIRA_PROJECT_KEY_PATTERN.fullmatch(key):
        raise ConfigurationError(
            f"Invalid Jira project key {key!r}. Use a project key such as PROJ or a numeric project id"
        )
    return key.upper()


class JiraClient:
    """Jira Cloud client bound to one connection's credentials."""

    platform = Platform.JIRA.value

    def __init__(
        self,
        config: JiraConfig,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.settings = settings or get_settings()
        self.domain = normalize_jira_domain(config.domain)
        self._transport = transport

        # Jira Basic Auth: base64(email:API_TOKEN)
        auth_string = f"{config.email}:{config.api_token}"
        auth_b64 = base64.b64encode(auth_string.encode("utf-8")).decode("utf-8")
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {auth_b64}",
            "Accept": "application/json",
        }
        logger.debug(f"Jira client for {self.domain} as {config.email} (token {mask_secret(config.api_token)})")

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}/rest/api/3"

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def _session(self) -> UpstreamSession:
        return UpstreamSession(
            "Jira",
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
            user = await upstream.request("GET", "/myself")

        if not isinstance(user, dict) or not (user.get("accountId") or user.get("emailAddress")):
            raise AuthenticationError("Invalid response from Jira API")
        logger.info(f"Jira connection verified for {user.get('displayName') or user.get('emailAddress')}")
        return True

    @log_upstream_call
    async def fetch_project_data(self, project_id: Optional[str] = None) -> Optional[JiraPayload]:
        project_key = project_id or self.config.project_key
        if project_key:
            project_key = validate_project_key(project_key)

        async with self._session() as upstream:
            if project_key:
                payload = await self._fetch_project(upstream, project_key)
                return JiraPayload(domain=self.domain, projects=[payload])

            keys = await self._discover_project_keys(upstream)
            if not keys:
                return None

            results = await asyncio.gather(
                *(self._fetch_project(upstream, key) for key in keys),
                return_exceptions=True,
            )

        projects: List[JiraProjectPayload] = []
        for key, result in zip(keys, results):
            if isinstance(result, AuthenticationError):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"Skipping Jira project {key}: {result}")
                continue
            projects.append(result)
        return JiraPayload(domain=self.domain, projects=projects)

    async def _discover_project_keys(self, upstream: UpstreamSession) -> List[str]:
        data = await upstream.request(
            "GET",
            "/project/search",
            params={"maxResults": self.settings.max_projects_per_fetch, "orderBy": "key"},
        )
        values = (data or {}).get("values", []) if isinstance(data, dict) else data or []
        return [p["key"] for p in values if isinstance(p, dict) and p.get("key")]

    async def _fetch_project(self, upstream: UpstreamSession, project_key: str) -> JiraProjectPayload:
        project = await upstream.request(
            "GET", f"/project/{project_key}", params={"expand": "lead,issueTypes"}
        )
        issues = await self._search_issues(upstream, project_key)
        logger.info(f"Fetched Jira project {project_key} with {len(issues)} issues")
        return JiraProjectPayload(project=project or {}, issues=issues)

    async def _search_issues(self, upstream: UpstreamSession, project_key: str) -> List[Dict[str, Any]]:
        """Page through the enhanced search endpoint up to ``jira_max_issues``."""
        max_issues = self.settings.jira_max_issues
        page_size = min(self.settings.jira_page_size, max_issues)
        issues: List[Dict[str, Any]] = []
        next_page_token: Optional[str] = None

        while len(issues) < max_issues:
            body: Dict[str, Any] = {
                "jql": f'project = "{project_key}" ORDER BY created DESC',
                "fields": ISSUE_FIELDS,
                "maxResults": page_size,
            }
            if next_page_token:
                body["nextPageToken"] = next_page_token

            data = await upstream.request("POST", "/search/jql", json=body) or {}
            batch = data.get("issues", [])
            issues.extend(batch)

            next_page_token = data.get("nextPageToken")
            if not batch or not next_page_token or data.get("isLast", False):
                break

        if len(issues) > max_issues:
            logger.info(f"Jira project {project_key} truncated to {max_issues} issues")
        return issues[:max_issues]
