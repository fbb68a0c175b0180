"""
Unit tests for JiraClient against a mocked Jira REST API
"""

import base64
import json

import httpx
import pytest

from platform_integrations.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    UpstreamUnavailableError,
)
from platform_integrations.platforms.jira import JiraClient
from platform_integrations.platforms.models import JiraConfig, JiraPayload


def make_client(config, settings, handler):
    return JiraClient(
        JiraConfig.model_validate(config),
        settings=settings,
        transport=httpx.MockTransport(handler),
    )


def issue(key, status="To Do"):
    return {"key": key, "fields": {"summary": f"Issue {key}", "status": {"name": status}}}


class TestJiraClientSetup:
    """Tests for client construction."""

    def test_base_url_and_auth_header(self, jira_config, test_settings):
        client = JiraClient(JiraConfig.model_validate(jira_config), settings=test_settings)

        expected = base64.b64encode(b"pm@acme.com:jira-token-1234").decode()
        assert client.base_url == "https://acme.atlassian.net/rest/api/3"
        assert client.headers["Authorization"] == f"Basic {expected}"

    def test_headers_are_copies(self, jira_config, test_settings):
        client = JiraClient(JiraConfig.model_validate(jira_config), settings=test_settings)
        client.headers["Authorization"] = "tampered"
        assert client.headers["Authorization"] != "tampered"


class TestJiraTestConnection:
    """Tests for test_connection."""

    @pytest.mark.asyncio
    async def test_success(self, jira_config, test_settings):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"accountId": "abc", "emailAddress": "pm@acme.com"})

        client = make_client(jira_config, test_settings, handler)
        assert await client.test_connection() is True
        assert seen["path"] == "/rest/api/3/myself"
        assert seen["auth"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_unauthorized(self, jira_config, test_settings):
        client = make_client(jira_config, test_settings, lambda request: httpx.Response(401))
        with pytest.raises(AuthenticationError, match="Invalid email or API token"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_forbidden(self, jira_config, test_settings):
        client = make_client(jira_config, test_settings, lambda request: httpx.Response(403))
        with pytest.raises(AuthenticationError, match="sufficient permissions"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_unexpected_body(self, jira_config, test_settings):
        client = make_client(jira_config, test_settings, lambda request: httpx.Response(200, json={}))
        with pytest.raises(AuthenticationError):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_dns_failure(self, jira_config, test_settings):
        def handler(request):
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

        client = make_client(jira_config, test_settings, handler)
        with pytest.raises(UpstreamUnavailableError, match="Cannot resolve domain 'acme.atlassian.net'") as exc:
            await client.test_connection()
        assert exc.value.details["reason"] == "dns"

    @pytest.mark.asyncio
    async def test_connection_refused_is_distinct_from_dns(self, jira_config, test_settings):
        def handler(request):
            raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

        client = make_client(jira_config, test_settings, handler)
        with pytest.raises(UpstreamUnavailableError, match="Connection refused") as exc:
            await client.test_connection()
        assert exc.value.details["reason"] == "refused"

    @pytest.mark.asyncio
    async def test_timeout(self, jira_config, test_settings):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(jira_config, test_settings, handler)
        with pytest.raises(UpstreamUnavailableError, match="did not respond"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_server_error_retried(self, jira_config, test_settings):
        test_settings.upstream_max_retries = 1
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={"accountId": "abc"})

        client = make_client(jira_config, test_settings, handler)
        assert await client.test_connection() is True
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, jira_config, test_settings):
        test_settings.upstream_max_retries = 3
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401)

        client = make_client(jira_config, test_settings, handler)
        with pytest.raises(AuthenticationError):
            await client.test_connection()
        assert len(calls) == 1


class TestJiraFetchProjectData:
    """Tests for fetch_project_data."""

    @pytest.mark.asyncio
    async def test_fetches_project_and_pages_issues(self, jira_config, test_settings):
        search_bodies = []

        def handler(request):
            path = request.url.path
            if path == "/rest/api/3/project/PROJ":
                return httpx.Response(200, json={"id": "10000", "key": "PROJ", "name": "Project"})
            if path == "/rest/api/3/search/jql":
                body = json.loads(request.content)
                search_bodies.append(body)
                if "nextPageToken" not in body:
                    return httpx.Response(200, json={"issues": [issue("PROJ-1"), issue("PROJ-2")], "nextPageToken": "t2"})
                return httpx.Response(200, json={"issues": [issue("PROJ-3")], "isLast": True})
            return httpx.Response(404)

        client = make_client(jira_config, test_settings, handler)
        payload = await client.fetch_project_data()

        assert isinstance(payload, JiraPayload)
        assert payload.domain == "acme.atlassian.net"
        assert [i["key"] for i in payload.projects[0].issues] == ["PROJ-1", "PROJ-2", "PROJ-3"]
        assert 'project = "PROJ"' in search_bodies[0]["jql"]
        assert search_bodies[0]["maxResults"] == 100
        assert search_bodies[1]["nextPageToken"] == "t2"

    @pytest.mark.asyncio
    async def test_project_id_argument_overrides_config_and_is_uppercased(self, jira_config, test_settings):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            if request.url.path.startswith("/rest/api/3/project/"):
                return httpx.Response(200, json={"id": "2", "key": "OTHER", "name": "Other"})
            return httpx.Response(200, json={"issues": []})

        client = make_client(jira_config, test_settings, handler)
        await client.fetch_project_data("other")

        assert "/rest/api/3/project/OTHER" in paths

    @pytest.mark.parametrize("project_id", ['PROJ" OR project = "SECRET', "../../myself", "PROJ/1", "1PROJ", "PR OJ"])
    @pytest.mark.asyncio
    async def test_unsafe_project_id_rejected_before_any_request(self, jira_config, test_settings, project_id):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={})

        client = make_client(jira_config, test_settings, handler)
        with pytest.raises(ConfigurationError, match="Invalid Jira project key"):
            await client.fetch_project_data(project_id)
        assert requests == []

    @pytest.mark.asyncio
    async def test_numeric_project_id_accepted(self, jira_config, test_settings):
        seen = {}

        def handler(request):
            if request.url.path == "/rest/api/3/search/jql":
                seen["jql"] = json.loads(request.content)["jql"]
                return httpx.Response(200, json={"issues": []})
            seen["path"] = request.url.path
            return httpx.Response(200, json={"id": "10001", "key": "NUM", "name": "Numbered"})

        client = make_client(jira_config, test_settings, handler)
        await client.fetch_project_data("10001")

        assert seen["path"] == "/rest/api/3/project/10001"
        assert seen["jql"].startswith('project = "10001"')

    @pytest.mark.asyncio
    async def test_issue_cap(self, jira_config, test_settings):
        test_settings.jira_page_size = 2
        test_settings.jira_max_issues = 3
        searches = []

        def handler(request):
            if request.url.path == "/rest/api/3/search/jql":
                searches.append(request)
                n = len(searches)
                return httpx.Response(200, json={
                    "issues": [issue(f"PROJ-{n}a"), issue(f"PROJ-{n}b")],
                    "nextPageToken": f"t{n + 1}",
                })
            return httpx.Response(200, json={"id": "1", "key": "PROJ", "name": "Project"})

        client = make_client(jira_config, test_settings, handler)
        payload = await client.fetch_project_data()

        assert len(payload.projects[0].issues) == 3
        assert len(searches) == 2

    @pytest.mark.asyncio
    async def test_missing_project(self, jira_config, test_settings):
        client = make_client(jira_config, test_settings, lambda request: httpx.Response(404))
        with pytest.raises(NotFoundError):
            await client.fetch_project_data()

    @pytest.mark.asyncio
    async def test_discovers_projects_without_key(self, jira_config, test_settings):
        del jira_config["projectKey"]

        def handler(request):
            path = request.url.path
            if path == "/rest/api/3/project/search":
                return httpx.Response(200, json={"values": [{"key": "A"}, {"key": "B"}]})
            if path == "/rest/api/3/project/A":
                return httpx.Response(200, json={"id": "1", "key": "A", "name": "Alpha"})
            if path == "/rest/api/3/project/B":
                return httpx.Response(404)
            return httpx.Response(200, json={"issues": [issue("A-1")]})

        client = make_client(jira_config, test_settings, handler)
        payload = await client.fetch_project_data()

        assert [p.project["key"] for p in payload.projects] == ["A"]

    @pytest.mark.asyncio
    async def test_no_projects_visible(self, jira_config, test_settings):
        del jira_config["projectKey"]
        client = make_client(jira_config, test_settings, lambda request: httpx.Response(200, json={"values": []}))
        assert await client.fetch_project_data() is None
