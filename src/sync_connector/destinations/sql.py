"""SQL database destination."""

import asyncio
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from .base import BaseDestination
from ..core.schema_resolver import ResolvedSchema
from ..database import (
    DatabaseManager,
    WriteStatement,
    build_statement,
    list_columns,
    list_tables,
    table_exists,
)
from ..protocol.errors import BackendError, RecordNotFoundError, UnknownObjectError
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


class WriteTicket:
    """Decides whether one record's savepoint is released or rolled back.

    A write whose caller stopped waiting (its deadline expired) is abandoned,
    and the worker thread rolls its savepoint back instead of releasing it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._abandoned = False
        self._released = False
        self.rowcount: Optional[int] = None

    def abandon(self) -> bool:
        """Mark the write abandoned. False if its savepoint is already kept."""
        with self._lock:
            if self._released:
                return False
            self._abandoned = True
            return True

    def release(self) -> bool:
        """Keep the savepoint. False if the write was abandoned first."""
        with self._lock:
            if self._abandoned:
                return False
            self._released = True
            return True


@dataclass
class SQLBatch:
    """One connection, one transaction and one compiled statement per batch."""

    connection: Connection
    statement: WriteStatement
    clause: TextClause
    lock: threading.Lock


class SQLDestination(BaseDestination):
    """Destination that writes rows into a SQL database.

    Writes for a batch share a single transaction. Each record runs inside
    its own SAVEPOINT, so a failing record is rolled back alone and the rest
    of the batch still commits. The whole batch is committed once after every
    record has been executed.
    """

    # Statements of a batch are serialised on its single connection
    max_concurrency = 1

    default_speed = SpeedLimits(
        maximum_batch_size=1000,
        maximum_records_per_second=100000,
        maximum_parallel_batches=8
    )

    def __init__(
        self,
        database_url: Optional[str] = None,
        db_manager: Optional[DatabaseManager] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.db_manager = db_manager or DatabaseManager(database_url)

    async def test_connection(self) -> TestConnectionResponse:
        try:
            await asyncio.to_thread(self.db_manager.test_connection)
        except SQLAlchemyError as e:
            self.logger.warning("Database connection test failed", error=str(e))
            return TestConnectionResponse(success=False, error_message=str(e))
        return TestConnectionResponse(success=True)

    async def list_objects(self) -> List[SyncObject]:
        try:
            return await asyncio.to_thread(list_tables, self.db_manager.engine)
        except SQLAlchemyError as e:
            raise BackendError(f"Failed to list tables: {e}") from e

    async def list_fields(self, sync_object: SyncObject) -> List[ObjectField]:
        try:
            return await asyncio.to_thread(
                list_columns, self.db_manager.engine, sync_object.object_api_name
            )
        except SQLAlchemyError as e:
            raise BackendError(f"Failed to list columns: {e}") from e

    async def supported_operations(self, sync_object: SyncObject) -> List[Operation]:
        try:
            exists = await asyncio.to_thread(
                table_exists, self.db_manager.engine, sync_object.object_api_name
            )
        except SQLAlchemyError as e:
            raise BackendError(f"Failed to inspect table: {e}") from e

        if not exists:
            raise UnknownObjectError(sync_object.object_api_name)
        return [Operation.INSERT, Operation.UPDATE, Operation.UPSERT]

    @asynccontextmanager
    async def batch_session(
        self,
        sync_plan: SyncPlan,
        columns: ResolvedSchema
    ) -> AsyncIterator[SQLBatch]:
        statement = build_statement(
            sync_plan.operation,
            sync_plan.object.object_api_name,
            columns.identifier_column,
            columns.other_columns
        )
        self.logger.debug("Compiled batch statement", sql=statement.sql)

        try:
            connection = await asyncio.to_thread(self.db_manager.connect)
        except SQLAlchemyError as e:
            raise BackendError(f"Failed to connect to database: {e}") from e

        lock = threading.Lock()
        try:
            transaction = await asyncio.to_thread(connection.begin)
            yield SQLBatch(
                connection=connection,
                statement=statement,
                clause=statement.clause,
                lock=lock
            )
            # Writes that outlived their deadline still hold the lock
            await asyncio.to_thread(self._commit, transaction, lock)
        except SQLAlchemyError as e:
            raise BackendError(f"Batch transaction failed: {e}") from e
        finally:
            await asyncio.to_thread(self._close, connection, lock)

    @staticmethod
    def _commit(transaction, lock: threading.Lock):
        with lock:
            transaction.commit()

    @staticmethod
    def _close(connection: Connection, lock: threading.Lock):
        with lock:
            connection.close()

    async def write(
        self,
        record: Record,
        columns: ResolvedSchema,
        operation: Operation,
        sync_object: SyncObject,
        session: Optional[Any] = None
    ) -> RecordResult:
        if session is None:
            raise BackendError("SQL writes require a batch session")

        identifier = columns.identifier_of(record)
        params = session.statement.params_for(record)
        ticket = WriteTicket()

        try:
            rowcount = await asyncio.to_thread(self._execute, session, params, ticket)
        except asyncio.CancelledError:
            if ticket.abandon():
                self.logger.warning("Abandoned SQL write will be rolled back", identifier=identifier)
                raise
            # The row was kept before cancellation arrived, report what happened
            rowcount = ticket.rowcount

        if operation == Operation.UPDATE and rowcount == 0:
            raise RecordNotFoundError(identifier)

        return RecordResult.ok(identifier)

    @staticmethod
    def _execute(batch: SQLBatch, params: dict, ticket: WriteTicket) -> int:
        with batch.lock:
            with batch.connection.begin_nested() as savepoint:
                result = batch.connection.execute(batch.clause, params)
                ticket.rowcount = result.rowcount
                if not ticket.release():
                    savepoint.rollback()
            return result.rowcount

    async def close(self):
        await asyncio.to_thread(self.db_manager.dispose)
