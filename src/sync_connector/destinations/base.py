"""Base destination interface and common functionality."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

from ..config.settings import get_settings
from ..core.schema_resolver import ResolvedSchema
from ..protocol.models import (
    ObjectField,
    Operation,
    Record,
    RecordResult,
    SpeedLimits,
    SyncObject,
    SyncPlan,
    TestConnectionResponse,
)
from ..utils.logging import get_logger


class BaseDestination(ABC):
    """Abstract base class for all destination backends.

    A destination answers the metadata methods of the protocol and writes
    single records on behalf of the sync engine.
    """

    # Upper bound on concurrent writes the backend can absorb
    max_concurrency: int = 10

    # Advertised through get_sync_speed; settings may override them
    default_speed = SpeedLimits(
        maximum_batch_size=1000,
        maximum_records_per_second=100,
        maximum_parallel_batches=4
    )

    def __init__(self, **kwargs):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def test_connection(self) -> TestConnectionResponse:
        """Round-trip against the backend without mutating it."""
        pass

    @abstractmethod
    async def list_objects(self) -> List[SyncObject]:
        pass

    @abstractmethod
    async def list_fields(self, sync_object: SyncObject) -> List[ObjectField]:
        """List field metadata for an object.

        Raises:
            UnknownObjectError: If the object does not exist
        """
        pass

    @abstractmethod
    async def supported_operations(self, sync_object: SyncObject) -> List[Operation]:
        pass

    async def get_sync_speed(self, sync_plan: SyncPlan) -> SpeedLimits:
        """Capacity hints, with any SYNC_* settings applied on top."""
        overrides = get_settings().sync
        speed = self.default_speed
        return SpeedLimits(
            maximum_batch_size=overrides.maximum_batch_size or speed.maximum_batch_size,
            maximum_records_per_second=(
                overrides.maximum_records_per_second or speed.maximum_records_per_second
            ),
            maximum_parallel_batches=(
                overrides.maximum_parallel_batches or speed.maximum_parallel_batches
            )
        )

    @asynccontextmanager
    async def batch_session(
        self,
        sync_plan: SyncPlan,
        columns: ResolvedSchema
    ) -> AsyncIterator[Optional[Any]]:
        """Hold backend resources shared by every write of one batch.

        The yielded value is passed to each ``write`` call. Errors raised
        while leaving the session are fatal to the whole batch.
        """
        yield None

    @abstractmethod
    async def write(
        self,
        record: Record,
        columns: ResolvedSchema,
        operation: Operation,
        sync_object: SyncObject,
        session: Optional[Any] = None
    ) -> RecordResult:
        """Write a single record.

        Implementations either return a RecordResult or raise; the sync
        engine turns any exception into a failed result for this record.
        """
        pass

    async def close(self):
        """Release long-lived resources."""
        pass
