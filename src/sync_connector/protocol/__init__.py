"""Connector protocol: wire models, errors and the JSON-RPC envelope."""

from .errors import (
    ConnectorError,
    ProtocolError,
    ParseError,
    InvalidRequestError,
    UnknownMethodError,
    InvalidParamsError,
    SchemaError,
    NoActiveIdentifierError,
    UnknownObjectError,
    UnsupportedOperationError,
    BackendError,
    RecordError,
    RecordNotFoundError,
    RecordConflictError,
    RemoteAPIError
)

from .models import (
    Operation,
    FieldType,
    SyncObject,
    ObjectField,
    SchemaEntry,
    SyncPlan,
    RecordResult,
    SpeedLimits,
    to_wire
)

__all__ = [
    # Errors
    "ConnectorError",
    "ProtocolError",
    "ParseError",
    "InvalidRequestError",
    "UnknownMethodError",
    "InvalidParamsError",
    "SchemaError",
    "NoActiveIdentifierError",
    "UnknownObjectError",
    "UnsupportedOperationError",
    "BackendError",
    "RecordError",
    "RecordNotFoundError",
    "RecordConflictError",
    "RemoteAPIError",

    # Models
    "Operation",
    "FieldType",
    "SyncObject",
    "ObjectField",
    "SchemaEntry",
    "SyncPlan",
    "RecordResult",
    "SpeedLimits",
    "to_wire"
]
