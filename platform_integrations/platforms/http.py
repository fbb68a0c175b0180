# Platform Integrations Upstream HTTP
"""
Async HTTP session shared by the platform clients.

Each platform client opens a fresh ``UpstreamSession`` per operation with
its own base URL, headers and timeout; sessions are never reused across
connections. The session retries transport failures and 5xx responses
with exponential backoff and translates every failure into the service's
error taxonomy using the platform's own messages.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

import httpx

from platform_integrations.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)

ErrorMessages = Mapping[Union[int, str], str]

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated",
    "name resolution",
)
_REFUSED_MARKERS = ("connection refused", "errno 111", "econnrefused")


def is_dns_failure(error: Exception) -> bool:
    text = str(error).lower()
    return any(marker in text for marker in _DNS_MARKERS)


def is_connection_refused(error: Exception) -> bool:
    text = str(error).lower()
    return any(marker in text for marker in _REFUSED_MARKERS)


class UpstreamSession:
    """
    One-shot async HTTP session against a platform API.

    Usage:
        async with UpstreamSession("jira", base_url, headers) as upstream:
            data = await upstream.request("GET", "/myself")
    """

    def __init__(
        self,
        platform: str,
        base_url: str,
        headers: Mapping[str, str],
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        error_messages: Optional[ErrorMessages] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            platform: Display name used in log and error messages
            base_url: API root, paths are resolved against it
            headers: Authentication and content headers for this connection
            timeout: Per-request timeout in seconds
            max_retries: Extra attempts for transport failures and 5xx
            retry_delay: First backoff delay, doubled per attempt
            error_messages: Overrides keyed by HTTP status, "dns" or "refused"
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.platform = platform
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers)
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.retry_delay = retry_delay
        self.error_messages = dict(error_messages or {})
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "UpstreamSession":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """
        Make an HTTP request with retry logic and return the decoded JSON body.

        Raises:
            AuthenticationError: 401/403
            NotFoundError: 404
            ConfigurationError: other 4xx
            UpstreamUnavailableError: timeouts, network failures, 429, 5xx
        """
        if self._client is None:
            raise RuntimeError("UpstreamSession must be used as an async context manager")

        last_error: Optional[Exception] = None
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                response = await self._client.request(method, path, params=params, json=json)
            except httpx.TimeoutException as e:
                last_error = UpstreamUnavailableError(
                    f"{self.platform} did not respond within {self.timeout:g}s",
                    {"reason": "timeout"},
                )
                logger.debug(f"{self.platform} timeout on {method} {path}: {e}")
            except httpx.ConnectError as e:
                # DNS failures will not fix themselves on retry
                if is_dns_failure(e):
                    raise self._dns_error() from e
                last_error = self._connect_error(e)
            except httpx.RequestError as e:
                last_error = UpstreamUnavailableError(
                    f"Could not reach {self.platform}: {e}", {"reason": "network"}
                )
            else:
                if response.status_code >= 500:
                    last_error = UpstreamUnavailableError(
                        f"{self.platform} is unavailable (HTTP {response.status_code})",
                        {"status_code": response.status_code},
                    )
                else:
                    return self._handle_response(response, method, path)

            if attempt < attempts - 1:
                delay = self.retry_delay * (2 ** attempt)  # Exponential backoff
                logger.warning(f"{self.platform} request failed, retrying in {delay}s: {last_error}")
                await asyncio.sleep(delay)

        logger.error(f"{self.platform} request failed after {attempts} attempts: {last_error}")
        raise last_error

    def _handle_response(self, response: httpx.Response, method: str, path: str) -> Any:
        status = response.status_code
        if status >= 400:
            logger.error(f"{self.platform} client error: {status} on {method} {path}")
            raise self._status_error(status, response)

        if status == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                f"{self.platform} returned a response that is not valid JSON",
                {"status_code": status},
            ) from e

    def _status_error(self, status: int, response: httpx.Response) -> Exception:
        details = {"status_code": status}
        message = self.error_messages.get(status)
        if status in (401, 403):
            return AuthenticationError(
                message or f"{self.platform} rejected the credentials (HTTP {status})", details
            )
        if status == 404:
            return NotFoundError(message or f"{self.platform} resource not found", details)
        if status == 429:
            return UpstreamUnavailableError(
                message or f"{self.platform} rate limit exceeded. Please try again later", details
            )
        body = response.text[:200] if response.text else ""
        return ConfigurationError(
            message or f"{self.platform} rejected the request (HTTP {status}): {body}".rstrip(": "),
            details,
        )

    def _host(self) -> str:
        return httpx.URL(self.base_url).host

    def _dns_error(self) -> UpstreamUnavailableError:
        host = self._host()
        message = self.error_messages.get(
            "dns", f"Cannot resolve host '{host}'. Please check the server address"
        )
        return UpstreamUnavailableError(message.format(host=host), {"reason": "dns", "host": host})

    def _connect_error(self, error: Exception) -> UpstreamUnavailableError:
        host = self._host()
        if is_connection_refused(error):
            message = self.error_messages.get(
                "refused", f"Connection refused by '{host}'. Please check the server address"
            )
            return UpstreamUnavailableError(
                message.format(host=host), {"reason": "refused", "host": host}
            )
        return UpstreamUnavailableError(
            f"Could not connect to {self.platform}: {error}", {"reason": "network", "host": host}
        )
