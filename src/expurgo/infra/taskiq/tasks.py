"""Scheduled TaskIQ task driving deleted-instance cleanup.

The blob stores are supplied by the hosting service, so the worker is
registered at process startup rather than built here:

    from taskiq import TaskiqEvents
    from expurgo.domain.deletion import create_cleanup_worker
    from expurgo.infra.taskiq import broker, register_cleanup_worker

    @broker.on_event(TaskiqEvents.WORKER_STARTUP)
    async def _startup(state) -> None:
        register_cleanup_worker(create_cleanup_worker(file_store, metadata_store))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from expurgo.infra.taskiq.broker import broker
from expurgo.infra.taskiq.settings import get_taskiq_settings

if TYPE_CHECKING:
    from expurgo.domain.deletion.worker import DeletedInstanceCleanupWorker

logger = logging.getLogger(__name__)

CLEANUP_TASK_NAME = "expurgo.cleanup_deleted_instances"

_cleanup_worker: DeletedInstanceCleanupWorker | None = None


def register_cleanup_worker(worker: DeletedInstanceCleanupWorker | None) -> None:
    """Set (or clear, with None) the worker used by the cleanup task."""
    global _cleanup_worker  # noqa: PLW0603
    _cleanup_worker = worker


def get_cleanup_worker() -> DeletedInstanceCleanupWorker:
    """Return the registered worker.

    Raises:
        RuntimeError: If no worker has been registered in this process.
    """
    if _cleanup_worker is None:
        msg = "No cleanup worker registered. Call register_cleanup_worker() at startup."
        raise RuntimeError(msg)
    return _cleanup_worker


async def cleanup_deleted_instances() -> dict[str, Any]:
    """Drain due pending deletions and summarise the passes.

    Returns:
        JSON-serialisable summary stored in the result backend.
    """
    results = await get_cleanup_worker().drain()
    summary = {
        "passes": len(results),
        "success": all(r.success for r in results),
        "discovered": sum(r.discovered_count for r in results),
        "purged": sum(r.purged_count for r in results),
        "retried": sum(r.retried_count for r in results),
        "parked": sum(r.parked_count for r in results),
        "increment_failed": sum(r.increment_failed_count for r in results),
    }
    logger.info("cleanup_task_completed", extra=summary)
    return summary


cleanup_deleted_instances_task = broker.task(
    task_name=CLEANUP_TASK_NAME,
    schedule=[{"cron": get_taskiq_settings().cleanup_cron}],
)(cleanup_deleted_instances)
