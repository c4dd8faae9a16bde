"""JSON-RPC envelope: decode a request, dispatch it, encode the reply."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import (
    BackendError,
    ConnectorError,
    InvalidParamsError,
    InvalidRequestError,
    ParseError,
    UnknownMethodError,
)
from .models import (
    EmptyRequest,
    GetSyncSpeedRequest,
    ObjectRequest,
    SyncBatchRequest,
    to_wire,
)
from ..utils.logging import bind_request_context, get_logger


JSONRPC_VERSION = "2.0"

RequestT = TypeVar("RequestT", bound=BaseModel)


class Method(str, Enum):
    """The six connector operations."""
    TEST_CONNECTION = "test_connection"
    LIST_OBJECTS = "list_objects"
    LIST_FIELDS = "list_fields"
    SUPPORTED_OPERATIONS = "supported_operations"
    GET_SYNC_SPEED = "get_sync_speed"
    SYNC_BATCH = "sync_batch"

    @classmethod
    def parse(cls, value: Any) -> "Method":
        try:
            return cls(value)
        except ValueError:
            raise UnknownMethodError(value) from None


@dataclass
class RpcRequest:
    """A decoded JSON-RPC request."""

    id: Any
    method: Method
    params: Dict[str, Any]


def decode_request(raw_request: bytes) -> RpcRequest:
    """Decode and validate a raw JSON-RPC request body.

    Raises:
        ParseError: If the body is not valid JSON
        InvalidRequestError: If the body is not a request object
        UnknownMethodError: If the method is not a connector operation
    """
    try:
        body = json.loads(raw_request)
    except (ValueError, UnicodeDecodeError) as e:
        raise ParseError(f"Invalid JSON: {e}")

    if not isinstance(body, dict):
        raise InvalidRequestError("Request must be a JSON object")

    method = body.get("method")
    if not isinstance(method, str):
        raise InvalidRequestError("Request 'method' must be a string")

    params = body.get("params")
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        raise InvalidRequestError("Request 'params' must be an object")

    return RpcRequest(id=body.get("id"), method=Method.parse(method), params=params)


def encode_result(request_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def encode_error(request_id: Any, error: ConnectorError) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_error_object()}


def _request_id(raw_request: bytes) -> Optional[Any]:
    """Best-effort id recovery for requests that failed validation."""
    try:
        body = json.loads(raw_request)
    except (ValueError, UnicodeDecodeError):
        return None
    return body.get("id") if isinstance(body, dict) else None


def parse_params(model: Type[RequestT], params: Dict[str, Any]) -> RequestT:
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise InvalidParamsError(
            f"Invalid params for {model.__name__}",
            data=e.errors(include_url=False, include_context=False)
        )


class RpcDispatcher:
    """Routes decoded requests to a connector's operations."""

    def __init__(self, connector):
        """Initialize dispatcher.

        Args:
            connector: Object exposing the six operations as coroutines
        """
        self.connector = connector
        self.logger = get_logger(self.__class__.__name__)

    async def dispatch(self, method: Method, params: Dict[str, Any]) -> BaseModel:
        """Invoke the operation for ``method`` with typed params."""
        match method:
            case Method.TEST_CONNECTION:
                return await self.connector.test_connection(parse_params(EmptyRequest, params))
            case Method.LIST_OBJECTS:
                return await self.connector.list_objects(parse_params(EmptyRequest, params))
            case Method.LIST_FIELDS:
                return await self.connector.list_fields(parse_params(ObjectRequest, params))
            case Method.SUPPORTED_OPERATIONS:
                return await self.connector.supported_operations(parse_params(ObjectRequest, params))
            case Method.GET_SYNC_SPEED:
                return await self.connector.get_sync_speed(parse_params(GetSyncSpeedRequest, params))
            case Method.SYNC_BATCH:
                return await self.connector.sync_batch(parse_params(SyncBatchRequest, params))
        raise UnknownMethodError(method)

    async def handle(self, raw_request: bytes) -> Dict[str, Any]:
        """Handle one raw request and return the response envelope.

        Connector errors are returned as JSON-RPC error objects; anything
        unexpected is reported as a backend error.
        """
        try:
            request = decode_request(raw_request)
        except ConnectorError as e:
            self.logger.warning("Rejected malformed request", code=e.code, error=e.message)
            return encode_error(_request_id(raw_request), e)

        with bind_request_context(method=request.method.value, request_id=request.id):
            self.logger.info("Handling request")

            try:
                result = await self.dispatch(request.method, request.params)
            except ConnectorError as e:
                self.logger.warning("Request failed", code=e.code, error=e.message)
                return encode_error(request.id, e)
            except Exception as e:
                self.logger.exception("Unexpected error handling request")
                return encode_error(request.id, BackendError(f"Internal error: {e}"))

        return encode_result(request.id, to_wire(result))
