"""In-memory destination used for local runs and tests."""

from typing import Any, Dict, List, Optional

from .base import BaseDestination
from .registry import MINIMAL_REGISTRY_DATA, ObjectRegistry
from ..core.schema_resolver import ResolvedSchema
from ..protocol.errors import RecordConflictError, RecordError, RecordNotFoundError
from ..protocol.models import (
    ObjectField,
    Operation,
    Record,
    RecordResult,
    SpeedLimits,
    SyncObject,
    TestConnectionResponse,
)


class MemoryStore:
    """Records per object, keyed by identifier value."""

    def __init__(self):
        self.objects: Dict[str, Dict[Any, Dict[str, Any]]] = {}

    def table(self, object_api_name: str) -> Dict[Any, Dict[str, Any]]:
        return self.objects.setdefault(object_api_name, {})

    def get(self, object_api_name: str, identifier: Any) -> Optional[Dict[str, Any]]:
        return self.objects.get(object_api_name, {}).get(identifier)


class MemoryDestination(BaseDestination):
    """Destination that keeps records in process memory.

    It never contacts external state, so it exercises the engine's
    aggregation logic without a backend.
    """

    max_concurrency = 100

    default_speed = SpeedLimits(
        maximum_batch_size=200,
        maximum_records_per_second=100,
        maximum_parallel_batches=4
    )

    def __init__(
        self,
        registry: Optional[ObjectRegistry] = None,
        store: Optional[MemoryStore] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.registry = registry or ObjectRegistry.from_dict(MINIMAL_REGISTRY_DATA)
        self.store = store if store is not None else MemoryStore()

    async def test_connection(self) -> TestConnectionResponse:
        return TestConnectionResponse(success=True)

    async def list_objects(self) -> List[SyncObject]:
        return self.registry.objects()

    async def list_fields(self, sync_object: SyncObject) -> List[ObjectField]:
        self.logger.debug("Listing fields", object=sync_object.object_api_name)
        return list(self.registry.get(sync_object.object_api_name).fields)

    async def supported_operations(self, sync_object: SyncObject) -> List[Operation]:
        self.registry.get(sync_object.object_api_name)
        return [Operation.INSERT, Operation.UPDATE, Operation.UPSERT]

    async def write(
        self,
        record: Record,
        columns: ResolvedSchema,
        operation: Operation,
        sync_object: SyncObject,
        session: Optional[Any] = None
    ) -> RecordResult:
        definition = self.registry.get(sync_object.object_api_name)
        identifier = columns.identifier_of(record)

        if not definition.can_create_fields:
            unknown = [name for name in record if definition.is_custom_field(name)]
            if unknown:
                raise RecordError(f"Unknown fields for {definition.object_api_name}: {', '.join(sorted(unknown))}")

        values = {name: record[name] for name in columns.all_columns if name in record}
        # Unmapped fields still travel when the object accepts new fields
        if definition.can_create_fields:
            for name, value in record.items():
                values.setdefault(name, value)

        table = self.store.table(definition.object_api_name)
        existing = table.get(identifier)

        if operation == Operation.INSERT:
            if existing is not None:
                raise RecordConflictError(identifier)
            table[identifier] = values
        elif operation == Operation.UPDATE:
            if existing is None:
                raise RecordNotFoundError(identifier)
            existing.update(values)
        else:
            if existing is None:
                table[identifier] = values
            else:
                existing.update(values)

        return RecordResult.ok(identifier)
