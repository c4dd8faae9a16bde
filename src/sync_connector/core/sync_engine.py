"""Core sync engine for writing record batches to a destination."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from .schema_resolver import ResolvedSchema, resolve
from ..config.settings import get_settings
from ..destinations.base import BaseDestination
from ..protocol.errors import BackendError, ConnectorError, UnsupportedOperationError
from ..protocol.models import Record, RecordResult, SyncPlan
from ..utils.logging import get_logger, log_async_execution_time


@dataclass
class SyncStats:
    """Statistics for one synced batch."""

    total_records: int
    successful_records: int
    failed_records: int
    duration: float

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.total_records == 0:
            return 0.0
        return (self.successful_records / self.total_records) * 100

    @classmethod
    def from_results(cls, results: List[RecordResult], duration: float) -> "SyncStats":
        successful = sum(1 for r in results if r.success)
        return cls(
            total_records=len(results),
            successful_records=successful,
            failed_records=len(results) - successful,
            duration=duration
        )


class SyncEngine:
    """Reconciles a batch of records against a destination.

    Every record is written independently. A failing record becomes a failed
    RecordResult and never aborts the rest of the batch. Results are returned
    in input order whatever order the writes complete in.
    """

    def __init__(
        self,
        destination: BaseDestination,
        max_concurrent_writes: Optional[int] = None,
        write_timeout_seconds: Optional[float] = None
    ):
        """Initialize sync engine.

        Args:
            destination: Backend the records are written to
            max_concurrent_writes: Upper bound on in-flight writes
            write_timeout_seconds: Deadline for a single record write
        """
        settings = get_settings().sync

        self.destination = destination
        self.max_concurrent_writes = max_concurrent_writes or settings.max_concurrent_writes
        self.write_timeout_seconds = write_timeout_seconds or settings.write_timeout_seconds
        self.logger = get_logger(self.__class__.__name__)

    @property
    def concurrency(self) -> int:
        return max(1, min(self.max_concurrent_writes, self.destination.max_concurrency))

    @log_async_execution_time
    async def sync_batch(self, sync_plan: SyncPlan, records: List[Record]) -> List[RecordResult]:
        """Write a batch of records.

        Args:
            sync_plan: Object, operation and schema for the batch
            records: Records to write; never mutated

        Returns:
            One RecordResult per record, index-aligned with ``records``

        Raises:
            NoActiveIdentifierError: If the plan has no single active identifier
            UnsupportedOperationError: If the destination cannot perform the operation
            BackendError: If the batch as a whole failed (e.g. commit failure)
        """
        start_time = time.time()
        columns = resolve(sync_plan)
        await self._check_operation(sync_plan)

        self.logger.info(
            "Starting batch sync",
            object=sync_plan.object.object_api_name,
            operation=sync_plan.operation.value,
            identifier_column=columns.identifier_column,
            records=len(records),
            concurrency=self.concurrency
        )

        semaphore = asyncio.Semaphore(self.concurrency)

        try:
            async with self.destination.batch_session(sync_plan, columns) as session:
                results = await asyncio.gather(*[
                    self._write_record(semaphore, session, sync_plan, columns, record)
                    for record in records
                ])
        except ConnectorError:
            raise
        except Exception as e:
            self.logger.error(
                "Batch sync failed",
                object=sync_plan.object.object_api_name,
                error=str(e)
            )
            raise BackendError(f"Batch failed: {e}") from e

        stats = SyncStats.from_results(results, time.time() - start_time)
        self.logger.info(
            "Batch sync completed",
            object=sync_plan.object.object_api_name,
            total_records=stats.total_records,
            successful_records=stats.successful_records,
            failed_records=stats.failed_records,
            success_rate=f"{stats.success_rate:.1f}%",
            duration=f"{stats.duration:.2f}s"
        )

        return list(results)

    async def _check_operation(self, sync_plan: SyncPlan):
        operations = await self.destination.supported_operations(sync_plan.object)
        if sync_plan.operation not in operations:
            raise UnsupportedOperationError(
                f"Operation {sync_plan.operation.value!r} is not supported for "
                f"{sync_plan.object.object_api_name}",
                data={"supported_operations": [op.value for op in operations]}
            )

    async def _write_record(
        self,
        semaphore: asyncio.Semaphore,
        session: Any,
        sync_plan: SyncPlan,
        columns: ResolvedSchema,
        record: Record
    ) -> RecordResult:
        """Write one record, converting any failure into a failed result."""
        identifier = columns.identifier_of(record)

        if identifier is None:
            return RecordResult.failed(
                identifier,
                f"Record is missing identifier field {columns.identifier_column!r}"
            )

        async with semaphore:
            try:
                result = await asyncio.wait_for(
                    self.destination.write(
                        record, columns, sync_plan.operation, sync_plan.object, session
                    ),
                    timeout=self.write_timeout_seconds
                )
            except asyncio.TimeoutError:
                error_message = f"Write timed out after {self.write_timeout_seconds}s"
            except Exception as e:
                error_message = str(e) or type(e).__name__
            else:
                # Correlation always uses the record's own identifier
                return result.model_copy(update={"identifier": identifier})

        self.logger.warning(
            "Record write failed",
            object=sync_plan.object.object_api_name,
            identifier=identifier,
            error=error_message
        )
        return RecordResult.failed(identifier, error_message)
