"""Connector exception hierarchy.

Errors that can reach the transport carry a JSON-RPC error code. Per-record
errors are recovered by the sync engine into a failed ``RecordResult`` and
never reach the envelope.
"""

from typing import Any, Optional


class ConnectorError(Exception):
    """Base exception for connector errors."""

    code = -32000

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_error_object(self) -> dict:
        """Render as a JSON-RPC error object."""
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


# Protocol errors

class ProtocolError(ConnectorError):
    """Raised when a request cannot be understood."""
    code = -32600


class ParseError(ProtocolError):
    """Raised when the request body is not valid JSON."""
    code = -32700


class InvalidRequestError(ProtocolError):
    """Raised when the request is not a JSON-RPC request object."""
    code = -32600


class UnknownMethodError(ProtocolError):
    """Raised when the method is not one of the six connector operations."""
    code = -32601

    def __init__(self, method: Any):
        super().__init__(f"Unknown method: {method!r}", data={"method": method})
        self.method = method


class InvalidParamsError(ProtocolError):
    """Raised when params do not match the method's request shape."""
    code = -32602


class SchemaError(InvalidParamsError):
    """Raised when a sync plan's schema is inconsistent."""
    pass


class NoActiveIdentifierError(SchemaError):
    """Raised when a sync plan marks zero or several active identifiers."""

    def __init__(self, active_fields: list):
        if active_fields:
            message = (
                "Sync plan must have exactly one active identifier, "
                f"found {len(active_fields)}: {', '.join(active_fields)}"
            )
        else:
            message = "Sync plan has no active identifier field"
        super().__init__(message, data={"active_identifiers": active_fields})
        self.active_fields = active_fields


# Metadata errors

class UnknownObjectError(ConnectorError):
    """Raised when an object is not known to the destination."""
    code = -32001

    def __init__(self, object_api_name: str):
        super().__init__(
            f"Unknown object: {object_api_name}",
            data={"object_api_name": object_api_name}
        )
        self.object_api_name = object_api_name


class UnsupportedOperationError(ConnectorError):
    """Raised when an operation is not supported for an object."""
    code = -32002


# Backend-systemic errors

class BackendError(ConnectorError):
    """Raised when a failure makes the whole batch untrustworthy."""
    code = -32000


# Per-record errors

class RecordError(Exception):
    """Base exception for failures scoped to a single record."""
    pass


class RecordNotFoundError(RecordError):
    """Raised when an update targets a record that does not exist."""

    def __init__(self, identifier: Any):
        super().__init__(f"Record not found: {identifier!r}")
        self.identifier = identifier


class RecordConflictError(RecordError):
    """Raised when an insert targets an identifier that already exists."""

    def __init__(self, identifier: Any):
        super().__init__(f"Record already exists: {identifier!r}")
        self.identifier = identifier


class RemoteAPIError(RecordError):
    """Raised when a remote API rejects a request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
