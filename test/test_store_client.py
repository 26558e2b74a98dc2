from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from portfolio_admin.api.client import SINGLE_OBJECT, StoreClient
from portfolio_admin.api.protocol import Order
from portfolio_admin.exceptions import NO_ROWS_CODE, NetworkError, StoreError


class RecordingStoreApp:
    """Minimal REST endpoint that records requests and replays canned responses."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.responses: dict[str, tuple[int, Any]] = {}
        self.app = web.Application()
        self.app.router.add_route("*", "/rest/v1/", self.root)
        self.app.router.add_route("*", "/rest/v1/{table}", self.handle)

    async def root(self, request: web.Request) -> web.Response:
        if request.headers.get("apikey") != "anon-key":
            return web.json_response({"message": "Invalid API key"}, status=401)
        return web.json_response({"paths": {}})

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        self.requests.append(
            {
                "method": request.method,
                "table": request.match_info["table"],
                "query": dict(request.query),
                "headers": request.headers.copy(),
                "json": body,
            }
        )
        status, payload = self.responses.get(request.method, (200, []))
        if payload is None:
            return web.Response(status=status)
        if isinstance(payload, str):
            return web.Response(status=status, text=payload)
        return web.json_response(payload, status=status)

    @property
    def last(self) -> dict[str, Any]:
        return self.requests[-1]


@pytest.fixture
def store_app() -> RecordingStoreApp:
    return RecordingStoreApp()


@pytest_asyncio.fixture
async def client(store_app: RecordingStoreApp):
    server = TestServer(store_app.app)
    await server.start_server()
    store_client = StoreClient(str(server.make_url("/")), "anon-key", timeout=5)
    yield store_client
    await store_client.close()
    await server.close()


@pytest.mark.asyncio
async def test_select_sends_key_headers_and_order(client, store_app):
    store_app.responses["GET"] = (200, [{"id": 2}, {"id": 1}])

    rows = await client.select("projects", order=Order("created_at", descending=True))

    assert rows == [{"id": 2}, {"id": 1}]
    request = store_app.last
    assert request["table"] == "projects"
    assert request["query"] == {"select": "*", "order": "created_at.desc"}
    assert request["headers"]["apikey"] == "anon-key"
    assert request["headers"]["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_select_single_asks_for_one_object(client, store_app):
    store_app.responses["GET"] = (200, {"id": 1, "theme": "dark"})

    row = await client.select("settings", eq={"id": 1}, single=True)

    assert row == {"id": 1, "theme": "dark"}
    assert store_app.last["query"]["id"] == "eq.1"
    assert store_app.last["query"]["limit"] == "1"
    assert store_app.last["headers"]["Accept"] == SINGLE_OBJECT


@pytest.mark.asyncio
async def test_select_single_with_no_rows_raises_no_rows_error(client, store_app):
    store_app.responses["GET"] = (
        406,
        {
            "code": NO_ROWS_CODE,
            "message": "JSON object requested, multiple (or no) rows returned",
            "details": "The result contains 0 rows",
            "hint": None,
        },
    )

    with pytest.raises(StoreError) as exc_info:
        await client.select("settings", eq={"id": 1}, single=True)

    error = exc_info.value
    assert error.is_no_rows
    assert error.status == 406
    assert error.details == "The result contains 0 rows"


@pytest.mark.asyncio
async def test_insert_asks_for_representation(client, store_app):
    store_app.responses["POST"] = (201, {"id": 7, "name": "GitHub"})

    row = await client.insert("social_links", {"name": "GitHub"})

    assert row == {"id": 7, "name": "GitHub"}
    assert store_app.last["json"] == {"name": "GitHub"}
    assert store_app.last["headers"]["Prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_update_filters_by_id(client, store_app):
    store_app.responses["PATCH"] = (200, {"id": 3, "level": 80})

    row = await client.update("skills", {"level": 80}, eq={"id": 3})

    assert row["level"] == 80
    assert store_app.last["method"] == "PATCH"
    assert store_app.last["query"]["id"] == "eq.3"
    assert store_app.last["json"] == {"level": 80}


@pytest.mark.asyncio
async def test_delete_accepts_empty_response(client, store_app):
    store_app.responses["DELETE"] = (204, None)

    assert await client.delete("projects", eq={"id": 9}) is None
    assert store_app.last["query"] == {"id": "eq.9"}


@pytest.mark.asyncio
async def test_store_rejection_keeps_code_and_message(client, store_app):
    store_app.responses["POST"] = (
        409,
        {"code": "23505", "message": "duplicate key value violates unique constraint"},
    )

    with pytest.raises(StoreError) as exc_info:
        await client.insert("projects", {"title": "x"})

    assert exc_info.value.code == "23505"
    assert "duplicate key" in exc_info.value.message
    assert exc_info.value.is_no_rows is False


@pytest.mark.asyncio
async def test_non_json_error_body_is_used_as_message(client, store_app):
    store_app.responses["GET"] = (502, "Bad Gateway")

    with pytest.raises(StoreError) as exc_info:
        await client.select("projects")

    assert exc_info.value.message == "Bad Gateway"
    assert exc_info.value.status == 502


@pytest.mark.asyncio
async def test_ping(client):
    assert await client.ping() is True

    wrong_key = StoreClient(client.base_url.removesuffix("/rest/v1/"), "other-key")
    try:
        assert await wrong_key.ping() is False
    finally:
        await wrong_key.close()


@pytest.mark.asyncio
async def test_unreachable_store_raises_network_error():
    client = StoreClient("http://127.0.0.1:1", "anon-key", timeout=2)
    try:
        with pytest.raises(NetworkError):
            await client.select("projects")
    finally:
        await client.close()


def test_base_url_ignores_trailing_slash():
    assert StoreClient("https://x.supabase.co/", "k").base_url == (
        "https://x.supabase.co/rest/v1/"
    )


def test_from_payload_message_fallbacks():
    assert StoreError.from_payload({"details": "only details"}).message == "only details"
    assert StoreError.from_payload({}, status=500).message == (
        "Store request failed (HTTP 500)"
    )
    assert StoreError.from_payload(None, status=503).message == (
        "Store request failed (HTTP 503)"
    )
