"""
Unit tests for MondayClient against a mocked GraphQL endpoint
"""

import json

import httpx
import pytest

from platform_integrations.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    UpstreamUnavailableError,
)
from platform_integrations.platforms.models import MondayConfig, MondayPayload
from platform_integrations.platforms.monday import MondayClient


def make_client(config, settings, handler):
    return MondayClient(
        MondayConfig.model_validate(config),
        settings=settings,
        transport=httpx.MockTransport(handler),
    )


def graphql(data):
    return httpx.Response(200, json={"data": data})


def board(board_id="42", items=None, cursor=None):
    return {
        "id": board_id,
        "name": "Sprint Board",
        "items_page": {"cursor": cursor, "items": items or []},
    }


class TestMondayTestConnection:
    """Tests for test_connection."""

    @pytest.mark.asyncio
    async def test_success_sends_api_key_and_version(self, monday_config, test_settings):
        seen = {}

        def handler(request):
            seen["host"] = request.url.host
            seen["method"] = request.method
            seen["authorization"] = request.headers["Authorization"]
            seen["version"] = request.headers["API-Version"]
            seen["body"] = json.loads(request.content)
            return graphql({"me": {"id": "1", "name": "PM"}})

        client = make_client(monday_config, test_settings, handler)
        assert await client.test_connection() is True
        assert seen["host"] == "api.monday.com"
        assert seen["method"] == "POST"
        assert seen["authorization"] == "monday-key-5678"
        assert seen["version"] == "2024-01"
        assert "me" in seen["body"]["query"]

    @pytest.mark.asyncio
    async def test_http_unauthorized(self, monday_config, test_settings):
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(401))
        with pytest.raises(AuthenticationError, match="Invalid Monday.com API key"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_graphql_auth_error(self, monday_config, test_settings):
        client = make_client(
            monday_config,
            test_settings,
            lambda request: httpx.Response(200, json={"errors": [{"message": "Not Authenticated"}]}),
        )
        with pytest.raises(AuthenticationError, match="Invalid Monday.com API key"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_error_message_envelope(self, monday_config, test_settings):
        body = {"error_message": "User unauthorized to perform action", "error_code": "UserUnauthorizedException"}
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(200, json=body))
        with pytest.raises(AuthenticationError):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_rate_limited(self, monday_config, test_settings):
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(429))
        with pytest.raises(UpstreamUnavailableError, match="rate limit exceeded"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_complexity_budget_is_rate_limit(self, monday_config, test_settings):
        body = {"errors": [{"message": "Complexity budget exhausted"}]}
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(200, json=body))
        with pytest.raises(UpstreamUnavailableError, match="rate limit exceeded"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_invalid_board_argument_is_configuration_error(self, monday_config, test_settings):
        body = {"errors": [{
            "message": "Argument 'ids' on Field 'boards' has an invalid value (abc).",
            "extensions": {"code": "argumentLiteralsIncompatible"},
        }]}
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(200, json=body))
        with pytest.raises(ConfigurationError, match="Invalid Monday.com request"):
            await client.fetch_project_data("abc")

    @pytest.mark.asyncio
    async def test_unknown_board_error_is_not_found(self, monday_config, test_settings):
        body = {"error_message": "Board not found", "error_code": "InvalidBoardIdException"}
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(200, json=body))
        with pytest.raises(NotFoundError, match="not found"):
            await client.fetch_project_data("999")

    @pytest.mark.asyncio
    async def test_other_graphql_error_is_upstream_failure(self, monday_config, test_settings):
        body = {"errors": [{"message": "Internal server error"}]}
        client = make_client(monday_config, test_settings, lambda request: httpx.Response(200, json=body))
        with pytest.raises(UpstreamUnavailableError, match="Monday.com API error"):
            await client.test_connection()

    @pytest.mark.asyncio
    async def test_missing_me(self, monday_config, test_settings):
        client = make_client(monday_config, test_settings, lambda request: graphql({"me": None}))
        with pytest.raises(AuthenticationError):
            await client.test_connection()


class TestMondayFetchProjectData:
    """Tests for fetch_project_data."""

    @pytest.mark.asyncio
    async def test_follows_item_cursors(self, monday_config, test_settings):
        bodies = []

        def handler(request):
            body = json.loads(request.content)
            bodies.append(body)
            if "next_items_page" in body["query"]:
                return graphql({"next_items_page": {"cursor": None, "items": [{"id": "2"}]}})
            return graphql({"boards": [board(items=[{"id": "1"}], cursor="c1")]})

        client = make_client(monday_config, test_settings, handler)
        payload = await client.fetch_project_data()

        assert isinstance(payload, MondayPayload)
        fetched = payload.boards[0]
        assert [item["id"] for item in fetched["items"]] == ["1", "2"]
        assert "items_page" not in fetched
        assert bodies[0]["variables"]["boardIds"] == ["42"]
        assert bodies[1]["variables"]["cursor"] == "c1"

    @pytest.mark.asyncio
    async def test_item_cap(self, monday_config, test_settings):
        test_settings.monday_max_items = 3

        def handler(request):
            body = json.loads(request.content)
            if "next_items_page" in body["query"]:
                return graphql({"next_items_page": {"cursor": "again", "items": [{"id": "x"}, {"id": "y"}]}})
            return graphql({"boards": [board(items=[{"id": "1"}, {"id": "2"}], cursor="c1")]})

        client = make_client(monday_config, test_settings, handler)
        payload = await client.fetch_project_data()

        assert len(payload.boards[0]["items"]) == 3

    @pytest.mark.asyncio
    async def test_project_id_argument_overrides_board(self, monday_config, test_settings):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return graphql({"boards": [board(board_id="99")]})

        client = make_client(monday_config, test_settings, handler)
        await client.fetch_project_data("99")

        assert bodies[0]["variables"]["boardIds"] == ["99"]

    @pytest.mark.asyncio
    async def test_missing_board(self, monday_config, test_settings):
        client = make_client(monday_config, test_settings, lambda request: graphql({"boards": []}))
        with pytest.raises(NotFoundError, match="Board with ID 42 not found or not accessible"):
            await client.fetch_project_data()

    @pytest.mark.asyncio
    async def test_lists_boards_without_board_id(self, monday_config, test_settings):
        del monday_config["boardId"]
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return graphql({"boards": [board("1"), board("2")]})

        client = make_client(monday_config, test_settings, handler)
        payload = await client.fetch_project_data()

        assert [b["id"] for b in payload.boards] == ["1", "2"]
        assert bodies[0]["variables"]["boardLimit"] == 10

    @pytest.mark.asyncio
    async def test_no_boards_without_board_id(self, monday_config, test_settings):
        del monday_config["boardId"]
        client = make_client(monday_config, test_settings, lambda request: graphql({"boards": []}))
        assert await client.fetch_project_data() is None
