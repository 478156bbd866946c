"""Batched cleanup of instances whose deletion has come due.

One pass:

1. Opens a unit-of-work scope.
2. Discovers up to ``batch_size`` due pending-deletion records, oldest
   ``cleanup_after`` first. A discovery failure ends the pass with
   ``success=False`` and ``discovered_count=0``; nothing else is called.
3. For each record, in discovery order: deletes the file and the metadata
   blob concurrently and waits for both, then purges the record. Any
   failure is isolated to that record and turned into a retry-ledger
   increment with ``cleanup_after = now + retry_back_off``. A record whose
   retry count goes past ``max_retries`` is parked and reported at
   CRITICAL level. Only a failed increment marks the pass unsuccessful,
   and the loop still continues.
4. Completes the scope regardless of individual failures.

No ``Exception`` escapes :meth:`CleanupReconciler.run_cleanup_pass`.
Task cancellation does: the pass stops at the next await, the scope is
released, and any record left unpurged is picked up again by a later pass
whose idempotent blob deletes simply find nothing to remove.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from expurgo.foundation.domain.pending_deletion import utc_now

if TYPE_CHECKING:
    from datetime import timedelta

    from expurgo.domain.deletion.settings import DeletedInstanceCleanupSettings
    from expurgo.foundation.domain.identifiers import VersionedInstanceIdentifier
    from expurgo.foundation.domain.pending_deletion import Clock
    from expurgo.foundation.domain.ports import (
        FileStorePort,
        IndexStorePort,
        MetadataStorePort,
        TransactionHandlerPort,
    )

logger = logging.getLogger(__name__)


@dataclass
class CleanupPassResult:
    """Aggregate outcome of one cleanup pass.

    Attributes:
        success: False if discovery failed or a retry increment failed.
        discovered_count: Records returned by discovery, including ones
            that later failed.
        purged_count: Records fully deleted and purged.
        retried_count: Records that failed and were rescheduled.
        parked_count: Records that failed and exhausted their retry budget.
        increment_failed_count: Records whose retry increment itself failed.
    """

    success: bool = True
    discovered_count: int = 0
    purged_count: int = 0
    retried_count: int = 0
    parked_count: int = 0
    increment_failed_count: int = 0

    def is_saturated(self, batch_size: int) -> bool:
        """Whether discovery filled the batch, so more records are likely due."""
        return self.discovered_count >= batch_size


class CleanupReconciler:
    """Discovers due pending-deletion records and physically deletes them.

    Two passes must never work on the same record at once. The worker
    serializes passes in one process and the SQL index store's discovery
    skips records locked by a pass in another.

    Args:
        index_store: Source of pending-deletion records and owner of the retry ledger.
        metadata_store: Metadata blob store.
        file_store: Pixel data blob store.
        transaction_handler: Opens the unit-of-work scope for each pass.
        settings: Default batch size, retry budget and backoff.
        clock: Source of the current time (defaults to UTC now).
    """

    def __init__(
        self,
        index_store: IndexStorePort,
        metadata_store: MetadataStorePort,
        file_store: FileStorePort,
        transaction_handler: TransactionHandlerPort,
        settings: DeletedInstanceCleanupSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._index_store = index_store
        self._metadata_store = metadata_store
        self._file_store = file_store
        self._transaction_handler = transaction_handler
        self._settings = settings
        self._clock = clock

    @property
    def settings(self) -> DeletedInstanceCleanupSettings:
        return self._settings

    async def run_cleanup_pass(
        self,
        batch_size: int | None = None,
        max_retries: int | None = None,
        retry_back_off: timedelta | None = None,
    ) -> CleanupPassResult:
        """Run one discovery-and-reconciliation pass.

        Arguments left as None fall back to the configured settings.

        Returns:
            The aggregate result. Never raises ``Exception``.
        """
        if batch_size is None:
            batch_size = self._settings.batch_size
        if max_retries is None:
            max_retries = self._settings.max_retries
        if retry_back_off is None:
            retry_back_off = self._settings.retry_back_off

        result = CleanupPassResult()
        try:
            async with self._transaction_handler.begin_transaction() as scope:
                try:
                    identifiers = list(
                        await self._index_store.retrieve_deleted_instances(
                            batch_size, max_retries
                        )
                    )
                except Exception:
                    logger.critical("deleted_instance_retrieval_failed", exc_info=True)
                    result.success = False
                    return result

                result.discovered_count = len(identifiers)
                for identifier in identifiers:
                    await self._reconcile(identifier, max_retries, retry_back_off, result)

                scope.complete()
        except Exception:
            logger.critical("deleted_instance_cleanup_scope_failed", exc_info=True)
            result.success = False

        logger.info(
            "deleted_instance_cleanup_pass_completed",
            extra={
                "success": result.success,
                "discovered_count": result.discovered_count,
                "purged_count": result.purged_count,
                "retried_count": result.retried_count,
                "parked_count": result.parked_count,
                "increment_failed_count": result.increment_failed_count,
            },
        )
        return result

    async def _reconcile(
        self,
        identifier: VersionedInstanceIdentifier,
        max_retries: int,
        retry_back_off: timedelta,
        result: CleanupPassResult,
    ) -> None:
        try:
            await self._delete_blobs(identifier)
            # Purge only after both physical deletes succeeded in this attempt
            await self._index_store.delete_deleted_instance(identifier)
        except Exception as cleanup_exc:
            await self._record_failure(identifier, cleanup_exc, max_retries, retry_back_off, result)
        else:
            result.purged_count += 1
            logger.debug("deleted_instance_purged", extra={"instance": str(identifier)})

    async def _delete_blobs(self, identifier: VersionedInstanceIdentifier) -> None:
        outcomes = await asyncio.gather(
            self._file_store.delete_file_if_exists(identifier),
            self._metadata_store.delete_instance_metadata_if_exists(identifier),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _record_failure(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_exc: Exception,
        max_retries: int,
        retry_back_off: timedelta,
        result: CleanupPassResult,
    ) -> None:
        try:
            retry_count = await self._index_store.increment_deleted_instance_retry(
                identifier, self._clock() + retry_back_off
            )
        except Exception:
            logger.critical(
                "deleted_instance_retry_increment_failed",
                exc_info=True,
                extra={"instance": str(identifier), "cleanup_error": str(cleanup_exc)},
            )
            result.success = False
            result.increment_failed_count += 1
            return

        context = {
            "instance": str(identifier),
            "retry_count": retry_count,
            "max_retries": max_retries,
        }
        if retry_count > max_retries:
            logger.critical(
                "deleted_instance_cleanup_parked",
                exc_info=cleanup_exc,
                extra=context,
            )
            result.parked_count += 1
        else:
            logger.error("deleted_instance_cleanup_failed", exc_info=cleanup_exc, extra=context)
            result.retried_count += 1
