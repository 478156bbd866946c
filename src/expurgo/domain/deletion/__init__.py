"""Expurgo Domain Deletion -- deferred deletion scheduling and cleanup reconciliation."""

from expurgo.domain.deletion.parked import ParkedDeletionService
from expurgo.domain.deletion.reconciler import CleanupPassResult, CleanupReconciler
from expurgo.domain.deletion.scheduler import DeletionService
from expurgo.domain.deletion.settings import (
    DeletedInstanceCleanupSettings,
    get_cleanup_settings,
)
from expurgo.domain.deletion.worker import DeletedInstanceCleanupWorker, create_cleanup_worker

__all__ = [
    "CleanupPassResult",
    "CleanupReconciler",
    "DeletedInstanceCleanupSettings",
    "DeletedInstanceCleanupWorker",
    "DeletionService",
    "ParkedDeletionService",
    "create_cleanup_worker",
    "get_cleanup_settings",
]
