"""Operator access to parked pending-deletion records.

A record is parked once its retry count exceeds the retry budget. Cleanup
passes with that budget never select it again; an operator inspects it,
fixes the underlying store problem and requeues it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from expurgo.foundation.domain.pending_deletion import utc_now

if TYPE_CHECKING:
    from datetime import datetime

    from expurgo.domain.deletion.settings import DeletedInstanceCleanupSettings
    from expurgo.foundation.domain.identifiers import VersionedInstanceIdentifier
    from expurgo.foundation.domain.pending_deletion import Clock, PendingDeletionRecord
    from expurgo.foundation.domain.ports import ParkedRecordStorePort

logger = logging.getLogger(__name__)


class ParkedDeletionService:
    """Lists and requeues parked records.

    Args:
        store: Store exposing parked records.
        settings: Provides the default retry budget.
        clock: Source of the current time (defaults to UTC now).
    """

    def __init__(
        self,
        store: ParkedRecordStorePort,
        settings: DeletedInstanceCleanupSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock

    async def list_parked(
        self,
        max_retries: int | None = None,
        limit: int = 100,
    ) -> list[PendingDeletionRecord]:
        """Return parked records under the given (or configured) retry budget."""
        if max_retries is None:
            max_retries = self._settings.max_retries
        return list(await self._store.retrieve_parked_instances(max_retries, limit))

    async def requeue(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime | None = None,
    ) -> datetime:
        """Reset a record's retry count so normal reconciliation picks it up.

        Args:
            identifier: The parked record.
            cleanup_after: When it becomes eligible again (default: now).

        Returns:
            The ``cleanup_after`` instant that was written.

        Raises:
            NotFoundError: If the record does not exist.
        """
        when = cleanup_after or self._clock()
        await self._store.reset_deleted_instance_retry(identifier, when)
        logger.warning(
            "parked_deletion_requeued",
            extra={"instance": str(identifier), "cleanup_after": when.isoformat()},
        )
        return when
