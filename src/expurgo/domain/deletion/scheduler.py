"""Deletion scheduling: record the intent to delete study, series or instance data.

Scheduling only writes pending-deletion records to the index store. The
records become visible to the cleanup reconciler as soon as the write is
durable and eligible once ``cleanup_after`` has passed.

The partition is always passed in by the caller, which resolves it from
its own request handling.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from expurgo.foundation.domain.identifiers import DeletionScope
from expurgo.foundation.domain.pending_deletion import utc_now

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from expurgo.domain.deletion.settings import DeletedInstanceCleanupSettings
    from expurgo.foundation.domain.pending_deletion import Clock
    from expurgo.foundation.domain.ports import IndexStorePort

logger = logging.getLogger(__name__)


class DeletionService:
    """Schedules deletions by writing pending-deletion records.

    Store failures propagate to the caller unchanged; there is no local retry.

    Args:
        index_store: The index store receiving pending-deletion records.
        settings: Cleanup policy providing ``delete_delay``.
        clock: Source of the current time (defaults to UTC now).
    """

    def __init__(
        self,
        index_store: IndexStorePort,
        settings: DeletedInstanceCleanupSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._index_store = index_store
        self._settings = settings
        self._clock = clock

    async def delete_study(self, partition_name: str, study_instance_uid: str) -> datetime:
        """Schedule deletion of every instance in a study after the grace period."""
        return await self.schedule_deletion(
            partition_name,
            DeletionScope.for_study(study_instance_uid),
            self._settings.delete_delay,
        )

    async def delete_series(
        self,
        partition_name: str,
        study_instance_uid: str,
        series_instance_uid: str,
    ) -> datetime:
        """Schedule deletion of every instance in a series after the grace period."""
        return await self.schedule_deletion(
            partition_name,
            DeletionScope.for_series(study_instance_uid, series_instance_uid),
            self._settings.delete_delay,
        )

    async def delete_instance(
        self,
        partition_name: str,
        study_instance_uid: str,
        series_instance_uid: str,
        sop_instance_uid: str,
    ) -> datetime:
        """Schedule deletion of one instance after the grace period."""
        return await self.schedule_deletion(
            partition_name,
            DeletionScope.for_instance(
                study_instance_uid, series_instance_uid, sop_instance_uid
            ),
            self._settings.delete_delay,
        )

    async def delete_instance_now(
        self,
        partition_name: str,
        study_instance_uid: str,
        series_instance_uid: str,
        sop_instance_uid: str,
    ) -> datetime:
        """Schedule deletion of one instance with no grace period.

        Used by hard-delete paths; the record is due on the next cleanup pass.
        """
        scope = DeletionScope.for_instance(
            study_instance_uid, series_instance_uid, sop_instance_uid
        )
        return await self._write(partition_name, scope, self._clock())

    async def schedule_deletion(
        self,
        partition_name: str,
        scope: DeletionScope,
        delay: timedelta,
    ) -> datetime:
        """Write pending-deletion records for every instance in ``scope``.

        Args:
            partition_name: Partition of the caller's request.
            scope: Study, series or instance scope.
            delay: Time from now until the records become eligible.

        Returns:
            The ``cleanup_after`` instant that was written.

        Raises:
            NotFoundError: If nothing in the partition matches ``scope``.
            StoreUnavailableError: If the index store cannot be reached.
        """
        return await self._write(partition_name, scope, self._clock() + delay)

    async def _write(
        self,
        partition_name: str,
        scope: DeletionScope,
        cleanup_after: datetime,
    ) -> datetime:
        await self._index_store.write_pending_deletion(partition_name, scope, cleanup_after)
        logger.info(
            "deletion_scheduled",
            extra={
                "partition_name": partition_name,
                "scope_level": str(scope.level),
                "study_instance_uid": scope.study_instance_uid,
                "cleanup_after": cleanup_after.isoformat(),
            },
        )
        return cleanup_after
