"""Port interfaces for the authoritative index store.

The index store owns instance existence records and the pending-deletion
records (including their retry ledger). Only the deletion scheduler writes
new pending-deletion records, and only the cleanup reconciler advances or
purges them.

Every method is a coroutine; cancelling the awaiting task is the
cancellation signal for the call.

Example:
    >>> from expurgo.foundation.domain.ports import IndexStorePort
    >>> async def purge_all(store: IndexStorePort) -> None:
    ...     for identifier in await store.retrieve_deleted_instances(10, 5):
    ...         await store.delete_deleted_instance(identifier)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from expurgo.foundation.domain.identifiers import (
        DeletionScope,
        VersionedInstanceIdentifier,
    )
    from expurgo.foundation.domain.pending_deletion import PendingDeletionRecord


@runtime_checkable
class IndexStorePort(Protocol):
    """Port for the index store operations used by deletion scheduling and cleanup.

    Implementations must make ``increment_deleted_instance_retry`` an atomic
    per-record update so that overlapping cleanup passes degrade into
    duplicate (idempotent) physical deletes rather than lost updates.
    """

    async def write_pending_deletion(
        self,
        partition_name: str,
        scope: DeletionScope,
        cleanup_after: datetime,
    ) -> None:
        """Mark every instance in ``scope`` as pending deletion.

        Args:
            partition_name: Partition the scope belongs to.
            scope: Study, series or instance scope.
            cleanup_after: Instant after which physical deletion may start.

        Raises:
            NotFoundError: If no stored instance matches the scope.
            StoreUnavailableError: If the store cannot be reached.
        """
        ...

    async def retrieve_deleted_instances(
        self,
        batch_size: int,
        max_retries: int,
    ) -> Sequence[VersionedInstanceIdentifier]:
        """Return up to ``batch_size`` due records, oldest ``cleanup_after`` first.

        A record is due when ``cleanup_after <= now`` and
        ``retry_count <= max_retries``.
        """
        ...

    async def delete_deleted_instance(self, identifier: VersionedInstanceIdentifier) -> None:
        """Purge a pending-deletion record. A missing record is not an error."""
        ...

    async def increment_deleted_instance_retry(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime,
    ) -> int:
        """Increment the retry count and move ``cleanup_after``.

        Returns:
            The retry count after the increment.

        Raises:
            NotFoundError: If the record no longer exists.
        """
        ...


@runtime_checkable
class ParkedRecordStorePort(Protocol):
    """Port for operator access to records that exhausted their retry budget."""

    async def retrieve_parked_instances(
        self,
        max_retries: int,
        limit: int,
    ) -> Sequence[PendingDeletionRecord]:
        """Return up to ``limit`` records whose retry count exceeds ``max_retries``."""
        ...

    async def reset_deleted_instance_retry(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime,
    ) -> None:
        """Reset the retry count to zero and set ``cleanup_after``.

        Raises:
            NotFoundError: If the record does not exist.
        """
        ...
