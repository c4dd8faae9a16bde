"""Integration tests for the HTTP transport."""

from unittest.mock import AsyncMock

import pytest
from aiohttp import test_utils

from conftest import make_plan_dict
from sync_connector.config.settings import AppSettings, ServerSettings
from sync_connector.core.connector import Connector
from sync_connector.destinations import MemoryDestination, MemoryStore
from sync_connector.main import create_app, http_status_for


SECRET = "s3cret"


def rpc_body(method, params=None, request_id=1):
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or {}}


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def connector(store):
    return Connector(MemoryDestination(store=store))


@pytest.fixture
async def client(connector):
    settings = AppSettings(server=ServerSettings(shared_secret=SECRET))
    app = create_app(connector=connector, settings=settings)
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        yield client


class TestHttpStatus:
    """Test error to HTTP status mapping."""

    def test_result(self):
        assert http_status_for({"result": {}}) == 200

    def test_backend_error(self):
        assert http_status_for({"error": {"code": -32000, "message": "x"}}) == 500

    def test_other_errors(self):
        for code in (-32700, -32600, -32601, -32602, -32001, -32002):
            assert http_status_for({"error": {"code": code, "message": "x"}}) == 400


@pytest.mark.integration
class TestConnectorServer:
    """End-to-end requests through the aiohttp application."""

    @pytest.mark.asyncio
    async def test_missing_secret_is_rejected(self, client, store):
        params = {"sync_plan": make_plan_dict(), "records": [{"email": "a@x.com", "name": "A"}]}

        response = await client.post("/", json=rpc_body("sync_batch", params))

        assert response.status == 401
        assert await response.text() == "Unauthorized"
        assert store.objects == {}

    @pytest.mark.asyncio
    async def test_wrong_secret_is_rejected(self, client):
        response = await client.post("/?secret=nope", json=rpc_body("test_connection"))
        assert response.status == 401

    @pytest.mark.asyncio
    async def test_sync_batch(self, client, store):
        params = {
            "sync_plan": make_plan_dict(),
            "records": [
                {"email": "a@x.com", "name": "A"},
                {"name": "no identifier"},
                {"email": "b@x.com", "name": "B"},
            ],
        }

        response = await client.post(f"/?secret={SECRET}", json=rpc_body("sync_batch", params, 9))

        assert response.status == 200
        body = await response.json()
        assert body["jsonrpc"] == "2.0"
        assert body["id"] == 9
        results = body["result"]["record_results"]
        assert [r["success"] for r in results] == [True, False, True]
        assert results[1]["identifier"] is None
        assert store.get("customer", "b@x.com") == {"email": "b@x.com", "name": "B"}

    @pytest.mark.asyncio
    async def test_list_fields(self, client):
        params = {"object": {"object_api_name": "event", "label": "Events"}}

        response = await client.post(f"/?secret={SECRET}", json=rpc_body("list_fields", params))

        assert response.status == 200
        fields = (await response.json())["result"]["fields"]
        assert [f["field_api_name"] for f in fields] == ["event_id", "name", "occurred_at"]
        assert fields[2]["type"] == "date_time"

    @pytest.mark.asyncio
    async def test_unknown_method(self, client):
        response = await client.post(f"/?secret={SECRET}", json=rpc_body("drop_table"))

        assert response.status == 400
        assert (await response.json())["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_malformed_body(self, client):
        response = await client.post(f"/?secret={SECRET}", data=b"{oops")

        assert response.status == 400
        body = await response.json()
        assert body["id"] is None
        assert body["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_backend_failure(self, client, connector):
        connector.destination.list_objects = AsyncMock(side_effect=ConnectionError("backend down"))

        response = await client.post(f"/?secret={SECRET}", json=rpc_body("list_objects"))

        assert response.status == 500
        assert (await response.json())["error"]["code"] == -32000

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status == 200
        body = await response.json()
        assert body["status"] == "healthy"
        assert body["destination"] == "memory"


@pytest.mark.integration
class TestServerLifecycle:
    """Test application wiring without a shared secret."""

    @pytest.mark.asyncio
    async def test_open_server_and_cleanup(self):
        destination = MemoryDestination()
        destination.close = AsyncMock()
        app = create_app(connector=Connector(destination), settings=AppSettings())

        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            response = await client.post("/", json=rpc_body("test_connection"))
            assert response.status == 200
            assert (await response.json())["result"] == {"success": True, "error_message": None}

        destination.close.assert_awaited_once()
