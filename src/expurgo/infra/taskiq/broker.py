"""TaskIQ broker and scheduler configuration with Redis Stream.

Usage:
    # Start worker
    # taskiq worker expurgo.infra.taskiq.broker:broker expurgo.infra.taskiq.tasks

    # Start scheduler (single instance only: cleanup passes must not overlap)
    # taskiq scheduler expurgo.infra.taskiq.broker:scheduler expurgo.infra.taskiq.tasks
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Generic, TypeVar

from taskiq import TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource
from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from expurgo.infra.taskiq.settings import get_taskiq_settings

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


@lru_cache(maxsize=1)
def get_result_backend() -> RedisAsyncResultBackend[str]:
    """Get or create the TaskIQ result backend."""
    settings = get_taskiq_settings()
    return RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.result_ttl,
    )


@lru_cache(maxsize=1)
def get_broker() -> RedisStreamBroker:
    """Get or create the TaskIQ broker with its result backend."""
    settings = get_taskiq_settings()
    return RedisStreamBroker(url=settings.redis_url).with_result_backend(get_result_backend())


@lru_cache(maxsize=1)
def get_scheduler() -> TaskiqScheduler:
    """Get or create the TaskIQ scheduler.

    Schedules come from ``@broker.task(schedule=[...])`` labels.

    WARNING: Only run ONE scheduler instance per deployment. Two schedulers
    trigger overlapping cleanup passes.
    """
    _broker = get_broker()
    return TaskiqScheduler(broker=_broker, sources=[LabelScheduleSource(_broker)])


class _LazyProxy(Generic[T]):
    """Defers creation of the wrapped object until first attribute access.

    The taskiq CLI expects ``module:broker`` and ``module:scheduler``
    attributes; the proxies keep importing this module free of side effects.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory

    def __getattr__(self, name: str) -> object:
        return getattr(self._factory(), name)


broker: RedisStreamBroker = _LazyProxy(get_broker)  # type: ignore[assignment]
scheduler: TaskiqScheduler = _LazyProxy(get_scheduler)  # type: ignore[assignment]
