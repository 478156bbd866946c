"""Pass pacing for the cleanup reconciler.

A drain runs passes back to back while they come back full and
successful, then stops. The long-running worker alternates drains with a
polling-interval wait until it is asked to stop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from expurgo.domain.deletion.reconciler import CleanupReconciler
from expurgo.domain.deletion.settings import get_cleanup_settings
from expurgo.infra.persistence.database import get_session_factory
from expurgo.infra.persistence.unit_of_work import SqlTransactionHandler

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from expurgo.domain.deletion.reconciler import CleanupPassResult
    from expurgo.domain.deletion.settings import DeletedInstanceCleanupSettings
    from expurgo.foundation.domain.ports import FileStorePort, MetadataStorePort

logger = logging.getLogger(__name__)


class DeletedInstanceCleanupWorker:
    """Drives :class:`CleanupReconciler` passes one at a time.

    Args:
        reconciler: The reconciler to drive.
        settings: Pacing policy (drain limit and polling interval). Defaults
            to the reconciler's settings. Saturation is always judged
            against the batch size the reconciler actually used.
    """

    def __init__(
        self,
        reconciler: CleanupReconciler,
        settings: DeletedInstanceCleanupSettings | None = None,
    ) -> None:
        self._reconciler = reconciler
        self._settings = settings or reconciler.settings
        self._lock = asyncio.Lock()

    async def drain(self) -> list[CleanupPassResult]:
        """Run passes until one is unsaturated or unsuccessful.

        Concurrent callers within this process wait for each other. Passes
        running in other worker processes are kept apart by the index
        store, whose discovery skips records another pass has locked.

        Returns:
            The result of every pass that ran, in order.
        """
        batch_size = self._reconciler.settings.batch_size
        results: list[CleanupPassResult] = []
        async with self._lock:
            for _ in range(self._settings.max_passes_per_drain):
                result = await self._reconciler.run_cleanup_pass()
                results.append(result)
                if not (result.success and result.is_saturated(batch_size)):
                    break
            else:
                logger.warning(
                    "deleted_instance_cleanup_drain_limit_reached",
                    extra={"passes": len(results)},
                )
        return results

    async def run(self, stop_event: asyncio.Event) -> None:
        """Drain, then wait ``polling_interval``, until ``stop_event`` is set."""
        interval = self._settings.polling_interval.total_seconds()
        logger.info("deleted_instance_cleanup_worker_started", extra={"interval": interval})
        while not stop_event.is_set():
            await self.drain()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except TimeoutError:
                continue
        logger.info("deleted_instance_cleanup_worker_stopped")


def create_cleanup_worker(
    file_store: FileStorePort,
    metadata_store: MetadataStorePort,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    settings: DeletedInstanceCleanupSettings | None = None,
) -> DeletedInstanceCleanupWorker:
    """Wire a worker against the SQL index store.

    Args:
        file_store: Pixel data blob store adapter.
        metadata_store: Metadata blob store adapter.
        session_factory: Index database sessions. Defaults to the shared factory.
        settings: Cleanup policy. Defaults to environment settings.
    """
    from expurgo.domain.deletion.infrastructure.index_store import SqlIndexStore

    session_factory = session_factory or get_session_factory()
    settings = settings or get_cleanup_settings()
    reconciler = CleanupReconciler(
        index_store=SqlIndexStore(session_factory),
        metadata_store=metadata_store,
        file_store=file_store,
        transaction_handler=SqlTransactionHandler(session_factory),
        settings=settings,
    )
    return DeletedInstanceCleanupWorker(reconciler, settings)
