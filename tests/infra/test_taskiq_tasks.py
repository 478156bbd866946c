"""Unit tests for expurgo.infra.taskiq.tasks."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest

from expurgo.domain.deletion.reconciler import CleanupPassResult
from expurgo.infra.taskiq.tasks import (
    CLEANUP_TASK_NAME,
    cleanup_deleted_instances,
    cleanup_deleted_instances_task,
    get_cleanup_worker,
    register_cleanup_worker,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _no_registered_worker() -> Iterator[None]:
    register_cleanup_worker(None)
    yield
    register_cleanup_worker(None)


@pytest.mark.unit
class TestWorkerRegistry:
    def test_missing_worker_raises(self) -> None:
        with pytest.raises(RuntimeError, match="No cleanup worker registered"):
            get_cleanup_worker()

    def test_register_and_get(self) -> None:
        worker = MagicMock()
        register_cleanup_worker(worker)
        assert get_cleanup_worker() is worker


@pytest.mark.unit
class TestCleanupTask:
    def test_registered_with_cron_schedule(self) -> None:
        assert cleanup_deleted_instances_task.task_name == CLEANUP_TASK_NAME
        assert cleanup_deleted_instances_task.labels["schedule"] == [{"cron": "*/3 * * * *"}]

    @pytest.mark.asyncio
    async def test_summarises_drain(self) -> None:
        worker = MagicMock()
        worker.drain = AsyncMock(
            return_value=[
                CleanupPassResult(discovered_count=2, purged_count=1, retried_count=1),
                CleanupPassResult(discovered_count=1, parked_count=1),
            ]
        )
        register_cleanup_worker(worker)

        summary = await cleanup_deleted_instances()

        assert summary == {
            "passes": 2,
            "success": True,
            "discovered": 3,
            "purged": 1,
            "retried": 1,
            "parked": 1,
            "increment_failed": 0,
        }

    @pytest.mark.asyncio
    async def test_reports_failed_pass(self) -> None:
        worker = MagicMock()
        worker.drain = AsyncMock(
            return_value=[CleanupPassResult(success=False, increment_failed_count=1)]
        )
        register_cleanup_worker(worker)

        summary = await cleanup_deleted_instances()

        assert summary["success"] is False
        assert summary["passes"] == 1
        assert summary["increment_failed"] == 1
