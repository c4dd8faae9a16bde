"""Canny REST API destination."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import aiohttp

from .base import BaseDestination
from .registry import CANNY_REGISTRY_DATA, ObjectDefinition, ObjectRegistry
from ..config.settings import CannySettings, get_settings
from ..core.schema_resolver import ResolvedSchema
from ..performance.rate_limiter import AsyncRateLimiter
from ..protocol.errors import RecordNotFoundError, RemoteAPIError, UnknownObjectError
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


# Per-object API paths, relative to the base URL
OBJECT_ENDPOINTS: Dict[str, Dict[str, str]] = {
    "user": {
        "write": "/users/create_or_update",
        "retrieve": "/users/retrieve",
    },
}

# Canny answers a failed lookup with 400 ("invalid user") or 404
LOOKUP_MISS_STATUSES = {400, 404}


class CannyDestination(BaseDestination):
    """Canny CRM destination writing one record per API call.

    Upserts go straight to ``create_or_update``. Updates first confirm the
    record exists by racing a lookup per known key, and never create a
    record when every lookup misses.
    """

    max_concurrency = 8

    default_speed = SpeedLimits(
        maximum_batch_size=1000,
        maximum_records_per_second=100,
        maximum_parallel_batches=4
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        registry: Optional[ObjectRegistry] = None,
        request_timeout_seconds: Optional[float] = None,
        rate_limiter: Optional[AsyncRateLimiter] = None,
        **kwargs
    ):
        """Initialize Canny destination.

        Args:
            api_key: Canny API key; read from settings at call time when omitted
            base_url: Base API URL
            registry: Objects exposed by this destination
            request_timeout_seconds: Total timeout for a single API request
            rate_limiter: Shared limiter pacing outbound calls
        """
        super().__init__(**kwargs)
        settings = get_settings()

        self._api_key = api_key
        self.base_url = (base_url or settings.canny.base_url).rstrip('/')
        self.registry = registry or ObjectRegistry.from_dict(CANNY_REGISTRY_DATA)
        self.request_timeout_seconds = request_timeout_seconds or settings.canny.request_timeout_seconds
        self.records_per_second = (
            settings.sync.maximum_records_per_second
            or self.default_speed.maximum_records_per_second
        )
        self.rate_limiter = rate_limiter or AsyncRateLimiter(self.records_per_second, 1.0)

        self.logger.info(
            "Canny destination initialized",
            base_url=self.base_url,
            objects=len(self.registry)
        )

    @property
    def api_key(self) -> str:
        if self._api_key is not None:
            return self._api_key
        # Re-read so a rotated CANNY_API_KEY applies to the next call
        return CannySettings().api_key

    def _client_session(self) -> aiohttp.ClientSession:
        timeout = aiohttp.ClientTimeout(total=self.request_timeout_seconds)
        return aiohttp.ClientSession(timeout=timeout)

    @asynccontextmanager
    async def batch_session(
        self,
        sync_plan: SyncPlan,
        columns: ResolvedSchema
    ) -> AsyncIterator[aiohttp.ClientSession]:
        async with self._client_session() as session:
            yield session

    async def _post(
        self,
        session: aiohttp.ClientSession,
        path: str,
        payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """POST to the Canny API with the API key injected into the body."""
        url = f"{self.base_url}{path}"
        body = {"apiKey": self.api_key, **payload}

        async with self.rate_limiter.limit():
            async with session.post(url, json=body) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    raise RemoteAPIError(
                        f"Canny request to {path} failed: {response.status} - {error_text}",
                        status=response.status
                    )
                return await response.json(content_type=None)

    def _endpoint(self, definition: ObjectDefinition, kind: str) -> str:
        try:
            return OBJECT_ENDPOINTS[definition.object_api_name][kind]
        except KeyError:
            raise UnknownObjectError(definition.object_api_name) from None

    async def test_connection(self) -> TestConnectionResponse:
        try:
            async with self._client_session() as session:
                await self._post(session, "/boards/list", {})
        except (RemoteAPIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning("Canny connection test failed", error=str(e))
            return TestConnectionResponse(success=False, error_message=str(e) or type(e).__name__)
        return TestConnectionResponse(success=True)

    async def list_objects(self) -> List[SyncObject]:
        return self.registry.objects()

    async def list_fields(self, sync_object: SyncObject) -> List[ObjectField]:
        return list(self.registry.get(sync_object.object_api_name).fields)

    async def supported_operations(self, sync_object: SyncObject) -> List[Operation]:
        self.registry.get(sync_object.object_api_name)
        return [Operation.UPDATE, Operation.UPSERT]

    @staticmethod
    def build_payload(definition: ObjectDefinition, record: Record) -> Dict[str, Any]:
        """Split a record into well-known fields and a ``customFields`` area."""
        custom_fields = {k: v for k, v in record.items() if definition.is_custom_field(k)}
        known_fields = {k: v for k, v in record.items() if not definition.is_custom_field(k)}
        return {"customFields": custom_fields, **known_fields}

    def _lookup_keys(
        self,
        definition: ObjectDefinition,
        record: Record,
        columns: ResolvedSchema
    ) -> List[Tuple[str, Any]]:
        keys = [(columns.identifier_column, columns.identifier_of(record))]
        for name in definition.lookup_fields:
            if name != columns.identifier_column and record.get(name) is not None:
                keys.append((name, record[name]))
        return keys

    async def find_existing(
        self,
        session: aiohttp.ClientSession,
        definition: ObjectDefinition,
        record: Record,
        columns: ResolvedSchema
    ) -> Dict[str, Any]:
        """Race one lookup per key and return the first record found.

        Raises:
            RecordNotFoundError: If no lookup finds the record
            RemoteAPIError: If no lookup succeeds and one failed for a
                reason other than absence
        """
        path = self._endpoint(definition, "retrieve")
        tasks = [
            asyncio.create_task(self._post(session, path, {key: value}))
            for key, value in self._lookup_keys(definition, record, columns)
        ]
        failure: Optional[Exception] = None

        try:
            for next_done in asyncio.as_completed(tasks):
                try:
                    found = await next_done
                except RemoteAPIError as e:
                    if e.status not in LOOKUP_MISS_STATUSES and failure is None:
                        failure = e
                    continue
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    failure = failure or RemoteAPIError(f"Canny lookup failed: {e!r}")
                    continue

                if found and "error" not in found:
                    return found
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if failure is not None:
            raise failure
        raise RecordNotFoundError(columns.identifier_of(record))

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

        if operation == Operation.INSERT:
            raise RemoteAPIError("Canny does not support insert-only writes")

        if session is None:
            async with self._client_session() as own_session:
                return await self.write(record, columns, operation, sync_object, own_session)

        if operation == Operation.UPDATE:
            await self.find_existing(session, definition, record, columns)

        await self._post(session, self._endpoint(definition, "write"), self.build_payload(definition, record))
        self.logger.debug("Record written", object=definition.object_api_name, identifier=identifier)

        return RecordResult.ok(identifier)
