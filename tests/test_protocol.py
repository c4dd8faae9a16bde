"""Tests for the JSON-RPC envelope and request dispatch."""

import json
from unittest.mock import AsyncMock

import pytest

from conftest import make_plan_dict
from sync_connector.core.connector import Connector
from sync_connector.destinations import MemoryDestination
from sync_connector.protocol.envelope import (
    Method,
    RpcDispatcher,
    decode_request,
    encode_error,
)
from sync_connector.protocol.errors import (
    BackendError,
    InvalidRequestError,
    NoActiveIdentifierError,
    ParseError,
    UnknownMethodError,
    UnknownObjectError,
)
from sync_connector.protocol.models import RecordResult, SyncBatchResponse, SyncPlan, to_wire


def rpc(method, params=None, request_id=1) -> bytes:
    body = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        body["params"] = params
    return json.dumps(body).encode()


class TestDecodeRequest:
    """Test request decoding."""

    def test_valid_request(self):
        request = decode_request(rpc("list_objects", {}, request_id="abc"))

        assert request.id == "abc"
        assert request.method == Method.LIST_OBJECTS
        assert request.params == {}

    def test_missing_params_default_to_empty(self):
        request = decode_request(rpc("test_connection"))
        assert request.params == {}

    def test_invalid_json(self):
        with pytest.raises(ParseError):
            decode_request(b"{not json")

    def test_non_object_body(self):
        with pytest.raises(InvalidRequestError):
            decode_request(b"[1, 2, 3]")

    def test_missing_method(self):
        with pytest.raises(InvalidRequestError):
            decode_request(json.dumps({"id": 1}).encode())

    def test_params_must_be_object(self):
        with pytest.raises(InvalidRequestError):
            decode_request(rpc("list_objects", [1, 2]))

    def test_unknown_method(self):
        with pytest.raises(UnknownMethodError) as exc_info:
            decode_request(rpc("drop_everything"))

        assert exc_info.value.code == -32601
        assert exc_info.value.method == "drop_everything"


class TestErrorObjects:
    """Test error codes and error object rendering."""

    def test_error_codes(self):
        assert ParseError("x").code == -32700
        assert InvalidRequestError("x").code == -32600
        assert UnknownMethodError("x").code == -32601
        assert NoActiveIdentifierError([]).code == -32602
        assert UnknownObjectError("x").code == -32001
        assert BackendError("x").code == -32000

    def test_encode_error_includes_data(self):
        envelope = encode_error(7, UnknownObjectError("invoices"))

        assert envelope == {
            "jsonrpc": "2.0",
            "id": 7,
            "error": {
                "code": -32001,
                "message": "Unknown object: invoices",
                "data": {"object_api_name": "invoices"},
            },
        }

    def test_error_without_data_omits_key(self):
        assert "data" not in BackendError("boom").to_error_object()


class TestWireModels:
    """Test wire serialization of models."""

    def test_sync_plan_accepts_schema_key(self):
        plan = SyncPlan.model_validate(make_plan_dict())

        assert "email" in plan.schema_
        assert plan.schema_["email"].active_identifier is True

    def test_sync_plan_serializes_schema_key(self):
        wire = to_wire(SyncPlan.model_validate(make_plan_dict()))

        assert "schema" in wire
        assert "schema_" not in wire
        assert wire["operation"] == "upsert"

    def test_record_result_wire_form(self):
        response = SyncBatchResponse(record_results=[
            RecordResult.ok("a@x.com"),
            RecordResult.failed(None, "Record is missing identifier field 'email'"),
        ])

        assert to_wire(response) == {
            "record_results": [
                {"identifier": "a@x.com", "success": True, "error_message": None},
                {
                    "identifier": None,
                    "success": False,
                    "error_message": "Record is missing identifier field 'email'",
                },
            ]
        }


class TestRpcDispatcher:
    """Test end-to-end handling of raw requests."""

    def setup_method(self):
        self.dispatcher = RpcDispatcher(Connector(MemoryDestination()))

    @pytest.mark.asyncio
    async def test_test_connection(self):
        response = await self.dispatcher.handle(rpc("test_connection", {}))

        assert response["id"] == 1
        assert response["result"]["success"] is True

    @pytest.mark.asyncio
    async def test_list_objects(self):
        response = await self.dispatcher.handle(rpc("list_objects"))

        names = [o["object_api_name"] for o in response["result"]["objects"]]
        assert names == ["customer", "event"]

    @pytest.mark.asyncio
    async def test_list_fields_unknown_object(self):
        params = {"object": {"object_api_name": "invoices", "label": "Invoices"}}
        response = await self.dispatcher.handle(rpc("list_fields", params))

        assert response["error"]["code"] == -32001
        assert "result" not in response

    @pytest.mark.asyncio
    async def test_supported_operations(self):
        params = {"object": {"object_api_name": "customer", "label": "Customers"}}
        response = await self.dispatcher.handle(rpc("supported_operations", params))

        assert response["result"] == {"operations": ["insert", "update", "upsert"]}

    @pytest.mark.asyncio
    async def test_get_sync_speed(self):
        response = await self.dispatcher.handle(
            rpc("get_sync_speed", {"sync_plan": make_plan_dict()})
        )

        assert response["result"] == {
            "maximum_batch_size": 200,
            "maximum_records_per_second": 100,
            "maximum_parallel_batches": 4,
        }

    @pytest.mark.asyncio
    async def test_sync_batch(self):
        params = {
            "sync_plan": make_plan_dict(),
            "records": [{"email": "a@x.com", "name": "A"}, {"email": "b@x.com", "name": "B"}],
        }
        response = await self.dispatcher.handle(rpc("sync_batch", params))

        results = response["result"]["record_results"]
        assert [r["identifier"] for r in results] == ["a@x.com", "b@x.com"]
        assert all(r["success"] for r in results)

    @pytest.mark.asyncio
    async def test_sync_batch_schema_error(self):
        params = {
            "sync_plan": make_plan_dict(identifier=None, other_fields=["email", "name"]),
            "records": [{"email": "a@x.com", "name": "A"}],
        }
        response = await self.dispatcher.handle(rpc("sync_batch", params))

        assert response["error"]["code"] == -32602
        assert response["error"]["data"] == {"active_identifiers": []}

    @pytest.mark.asyncio
    async def test_invalid_params(self):
        response = await self.dispatcher.handle(rpc("sync_batch", {"records": []}))

        assert response["error"]["code"] == -32602
        assert any(tuple(error["loc"]) == ("sync_plan",) for error in response["error"]["data"])

    @pytest.mark.asyncio
    async def test_parse_error_has_null_id(self):
        response = await self.dispatcher.handle(b"garbage")

        assert response["id"] is None
        assert response["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_unknown_method_keeps_id(self):
        response = await self.dispatcher.handle(rpc("delete_object", request_id=42))

        assert response["id"] == 42
        assert response["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_backend_error(self):
        connector = AsyncMock()
        connector.list_objects.side_effect = RuntimeError("disk on fire")
        dispatcher = RpcDispatcher(connector)

        response = await dispatcher.handle(rpc("list_objects"))

        assert response["error"]["code"] == -32000
        assert "disk on fire" in response["error"]["message"]
