"""Wire models for the six connector operations."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


Record = Dict[str, Any]


class Operation(str, Enum):
    """Write operations a sync plan can request."""
    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"


class FieldType(str, Enum):
    """Field types understood by the orchestrator."""
    BOOLEAN = "boolean"
    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"
    DATE = "date"
    DATE_TIME = "date_time"
    DECIMAL = "decimal"


class SyncObject(BaseModel):
    """A syncable entity (table, collection, API resource)."""
    object_api_name: str
    label: str
    can_create_fields: Optional[str] = None


class ObjectField(BaseModel):
    """Metadata for one field of an object."""
    field_api_name: str
    label: str
    identifier: bool = False
    required: bool = False
    createable: bool = True
    updateable: bool = True
    array: bool = False
    type: FieldType = FieldType.STRING


class SchemaEntry(BaseModel):
    """One field mapping inside a sync plan."""
    active_identifier: bool = False
    field: ObjectField


class SyncPlan(BaseModel):
    """Declarative description of how a batch should be written."""
    object: SyncObject
    operation: Operation
    schema_: Dict[str, SchemaEntry] = Field(alias="schema")

    class Config:
        populate_by_name = True
        frozen = True


class RecordResult(BaseModel):
    """Outcome of writing a single record."""
    identifier: Any
    success: bool
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, identifier: Any) -> "RecordResult":
        return cls(identifier=identifier, success=True)

    @classmethod
    def failed(cls, identifier: Any, error_message: str) -> "RecordResult":
        return cls(identifier=identifier, success=False, error_message=error_message)


class SpeedLimits(BaseModel):
    """Advisory capacity the orchestrator should respect."""
    maximum_batch_size: int
    maximum_records_per_second: int
    maximum_parallel_batches: int


# Requests

class EmptyRequest(BaseModel):
    """Params for methods that take no arguments."""

    class Config:
        extra = "allow"


class ObjectRequest(BaseModel):
    """Params for list_fields and supported_operations."""
    object: SyncObject


class GetSyncSpeedRequest(BaseModel):
    """Params for get_sync_speed."""
    sync_plan: SyncPlan


class SyncBatchRequest(BaseModel):
    """Params for sync_batch."""
    sync_plan: SyncPlan
    records: List[Record]


# Responses

class TestConnectionResponse(BaseModel):
    success: bool
    error_message: Optional[str] = None


class ListObjectsResponse(BaseModel):
    objects: List[SyncObject]


class ListFieldsResponse(BaseModel):
    fields: List[ObjectField]


class SupportedOperationsResponse(BaseModel):
    operations: List[Operation]


class SyncBatchResponse(BaseModel):
    record_results: List[RecordResult]


def to_wire(model: BaseModel) -> Dict[str, Any]:
    """Serialize a response model to its JSON-compatible wire form."""
    return model.model_dump(mode="json", by_alias=True)
