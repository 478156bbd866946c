"""Shared fixtures: in-memory stores, a frozen clock and cleanup settings."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
import structlog

from expurgo.domain.deletion.reconciler import CleanupReconciler
from expurgo.domain.deletion.settings import DeletedInstanceCleanupSettings
from expurgo.foundation.domain.exceptions import NotFoundError, StoreUnavailableError
from expurgo.foundation.domain.identifiers import VersionedInstanceIdentifier
from expurgo.foundation.domain.pending_deletion import PendingDeletionRecord
from expurgo.infra.observability.logging import HANDLER_NAME, get_logging_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator

    from expurgo.foundation.domain.identifiers import DeletionScope

START = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)


def _in_scope(
    identifier: VersionedInstanceIdentifier, partition_name: str, scope: DeletionScope
) -> bool:
    return (
        identifier.partition_name == partition_name
        and identifier.study_instance_uid == scope.study_instance_uid
        and scope.series_instance_uid in (None, identifier.series_instance_uid)
        and scope.sop_instance_uid in (None, identifier.sop_instance_uid)
    )


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class InMemoryIndexStore:
    """Index store keeping instances and pending-deletion records in memory.

    Every call is appended to the shared ``events`` log so tests can
    assert on cross-store ordering.
    """

    def __init__(self, clock: FrozenClock, events: list[tuple[Any, ...]]) -> None:
        self.clock = clock
        self.events = events
        self.instances: list[VersionedInstanceIdentifier] = []
        self.records: dict[VersionedInstanceIdentifier, PendingDeletionRecord] = {}
        self.retrieve_error: Exception | None = None
        self.write_error: Exception | None = None
        self.failing_purges: set[VersionedInstanceIdentifier] = set()
        self.failing_increments: set[VersionedInstanceIdentifier] = set()

    def add_instance(self, identifier: VersionedInstanceIdentifier) -> None:
        self.instances.append(identifier)

    def add_record(
        self,
        identifier: VersionedInstanceIdentifier,
        *,
        cleanup_after: datetime | None = None,
        retry_count: int = 0,
    ) -> None:
        self.records[identifier] = PendingDeletionRecord(
            identifier=identifier,
            cleanup_after=cleanup_after or self.clock(),
            retry_count=retry_count,
            created_at=self.clock(),
        )

    def calls(self, name: str) -> list[tuple[Any, ...]]:
        return [e for e in self.events if e[0] == "index" and e[1] == name]

    async def write_pending_deletion(
        self,
        partition_name: str,
        scope: DeletionScope,
        cleanup_after: datetime,
    ) -> None:
        self.events.append(("index", "write", partition_name, scope, cleanup_after))
        if self.write_error is not None:
            raise self.write_error
        matched = [i for i in self.instances if _in_scope(i, partition_name, scope)]
        if not matched:
            raise NotFoundError("Study", scope.study_instance_uid, partition_name=partition_name)
        for identifier in matched:
            self.instances.remove(identifier)
            self.add_record(identifier, cleanup_after=cleanup_after)

    async def retrieve_deleted_instances(
        self,
        batch_size: int,
        max_retries: int,
    ) -> list[VersionedInstanceIdentifier]:
        self.events.append(("index", "retrieve", batch_size, max_retries))
        await asyncio.sleep(0)
        if self.retrieve_error is not None:
            raise self.retrieve_error
        now = self.clock()
        due = sorted(
            (
                r
                for r in self.records.values()
                if r.cleanup_after <= now and r.retry_count <= max_retries
            ),
            key=lambda r: (r.cleanup_after, r.identifier.version),
        )
        return [r.identifier for r in due[:batch_size]]

    async def delete_deleted_instance(self, identifier: VersionedInstanceIdentifier) -> None:
        self.events.append(("index", "purge", identifier))
        if identifier in self.failing_purges:
            raise StoreUnavailableError("index", "simulated purge failure")
        self.records.pop(identifier, None)

    async def increment_deleted_instance_retry(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime,
    ) -> int:
        self.events.append(("index", "increment", identifier, cleanup_after))
        if identifier in self.failing_increments:
            raise StoreUnavailableError("index", "simulated increment failure")
        record = self.records.get(identifier)
        if record is None:
            raise NotFoundError("DeletedInstance", str(identifier))
        self.records[identifier] = replace(
            record, retry_count=record.retry_count + 1, cleanup_after=cleanup_after
        )
        return self.records[identifier].retry_count

    async def retrieve_parked_instances(
        self,
        max_retries: int,
        limit: int,
    ) -> list[PendingDeletionRecord]:
        parked = [r for r in self.records.values() if r.retry_count > max_retries]
        return parked[:limit]

    async def reset_deleted_instance_retry(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime,
    ) -> None:
        record = self.records.get(identifier)
        if record is None:
            raise NotFoundError("DeletedInstance", str(identifier))
        self.records[identifier] = replace(record, retry_count=0, cleanup_after=cleanup_after)


class InMemoryBlobStore:
    """File or metadata store holding blob keys in a set."""

    def __init__(self, name: str, events: list[tuple[Any, ...]]) -> None:
        self.name = name
        self.events = events
        self.blobs: set[VersionedInstanceIdentifier] = set()
        self.failing: set[VersionedInstanceIdentifier] = set()

    async def delete_file_if_exists(self, identifier: VersionedInstanceIdentifier) -> None:
        await self._delete(identifier)

    async def delete_instance_metadata_if_exists(
        self,
        identifier: VersionedInstanceIdentifier,
    ) -> None:
        await self._delete(identifier)

    async def _delete(self, identifier: VersionedInstanceIdentifier) -> None:
        self.events.append((self.name, "delete", identifier))
        await asyncio.sleep(0)
        if identifier in self.failing:
            raise StoreUnavailableError(self.name, "simulated outage")
        self.blobs.discard(identifier)
        self.events.append((self.name, "deleted", identifier))


class FakeTransactionScope:
    def __init__(self) -> None:
        self.completed = False
        self.closed = False

    def complete(self) -> None:
        self.completed = True


class FakeTransactionHandler:
    """Records every scope it opens."""

    def __init__(self) -> None:
        self.scopes: list[FakeTransactionScope] = []

    @asynccontextmanager
    async def begin_transaction(self) -> AsyncIterator[FakeTransactionScope]:
        scope = FakeTransactionScope()
        self.scopes.append(scope)
        try:
            yield scope
        finally:
            scope.closed = True


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture()
def events() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture()
def index_store(clock: FrozenClock, events: list[tuple[Any, ...]]) -> InMemoryIndexStore:
    return InMemoryIndexStore(clock, events)


@pytest.fixture()
def file_store(events: list[tuple[Any, ...]]) -> InMemoryBlobStore:
    return InMemoryBlobStore("file", events)


@pytest.fixture()
def metadata_store(events: list[tuple[Any, ...]]) -> InMemoryBlobStore:
    return InMemoryBlobStore("metadata", events)


@pytest.fixture()
def transaction_handler() -> FakeTransactionHandler:
    return FakeTransactionHandler()


@pytest.fixture()
def cleanup_settings() -> DeletedInstanceCleanupSettings:
    return DeletedInstanceCleanupSettings(
        delete_delay=timedelta(days=3),
        batch_size=2,
        max_retries=3,
        retry_back_off=timedelta(hours=1),
        polling_interval=timedelta(seconds=1),
        max_passes_per_drain=5,
    )


@pytest.fixture()
def reconciler(
    index_store: InMemoryIndexStore,
    metadata_store: InMemoryBlobStore,
    file_store: InMemoryBlobStore,
    transaction_handler: FakeTransactionHandler,
    cleanup_settings: DeletedInstanceCleanupSettings,
    clock: FrozenClock,
) -> CleanupReconciler:
    return CleanupReconciler(
        index_store=index_store,
        metadata_store=metadata_store,
        file_store=file_store,
        transaction_handler=transaction_handler,
        settings=cleanup_settings,
        clock=clock,
    )


@pytest.fixture()
def make_identifier() -> Callable[..., VersionedInstanceIdentifier]:
    """Factory for versioned identifiers within one study."""

    def _make(
        sop: str = "1",
        version: int = 1,
        *,
        partition_name: str = "default",
        study: str = "1.2.840.1",
        series: str = "1.2.840.1.1",
    ) -> VersionedInstanceIdentifier:
        return VersionedInstanceIdentifier(
            partition_name=partition_name,
            study_instance_uid=study,
            series_instance_uid=series,
            sop_instance_uid=f"{series}.{sop}",
            version=version,
        )

    return _make


@pytest.fixture()
def restore_root_logger() -> Iterator[None]:
    """Undo ``configure_logging`` after the test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()
    get_logging_settings.cache_clear()
