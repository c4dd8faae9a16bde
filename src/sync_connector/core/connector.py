"""Connector implementing the six protocol operations for one destination."""

from ..destinations.base import BaseDestination
from ..protocol.models import (
    EmptyRequest,
    GetSyncSpeedRequest,
    ListFieldsResponse,
    ListObjectsResponse,
    ObjectRequest,
    SpeedLimits,
    SupportedOperationsResponse,
    SyncBatchRequest,
    SyncBatchResponse,
    TestConnectionResponse,
)
from ..utils.logging import get_logger
from .sync_engine import SyncEngine


class Connector:
    """Answers metadata methods from the destination and runs sync batches."""

    def __init__(self, destination: BaseDestination, sync_engine: SyncEngine = None):
        """Initialize the connector.

        Args:
            destination: Backend this connector talks to
            sync_engine: Engine used for sync_batch; built from settings if omitted
        """
        self.destination = destination
        self.sync_engine = sync_engine or SyncEngine(destination)
        self.logger = get_logger(self.__class__.__name__)

        self.logger.info("Connector initialized", destination=destination.__class__.__name__)

    async def test_connection(self, request: EmptyRequest) -> TestConnectionResponse:
        return await self.destination.test_connection()

    async def list_objects(self, request: EmptyRequest) -> ListObjectsResponse:
        objects = await self.destination.list_objects()
        return ListObjectsResponse(objects=objects)

    async def list_fields(self, request: ObjectRequest) -> ListFieldsResponse:
        fields = await self.destination.list_fields(request.object)
        return ListFieldsResponse(fields=fields)

    async def supported_operations(self, request: ObjectRequest) -> SupportedOperationsResponse:
        operations = await self.destination.supported_operations(request.object)
        return SupportedOperationsResponse(operations=operations)

    async def get_sync_speed(self, request: GetSyncSpeedRequest) -> SpeedLimits:
        return await self.destination.get_sync_speed(request.sync_plan)

    async def sync_batch(self, request: SyncBatchRequest) -> SyncBatchResponse:
        record_results = await self.sync_engine.sync_batch(request.sync_plan, request.records)
        return SyncBatchResponse(record_results=record_results)

    async def close(self):
        await self.destination.close()
