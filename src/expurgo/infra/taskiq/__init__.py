"""Expurgo Infra TaskIQ — broker factory and the scheduled cleanup task."""

from expurgo.infra.taskiq.broker import (
    broker,
    get_broker,
    get_result_backend,
    get_scheduler,
    scheduler,
)
from expurgo.infra.taskiq.lifespan import lifespan_contribution
from expurgo.infra.taskiq.settings import TaskIQSettings, get_taskiq_settings
from expurgo.infra.taskiq.tasks import (
    CLEANUP_TASK_NAME,
    cleanup_deleted_instances,
    get_cleanup_worker,
    register_cleanup_worker,
)

__all__ = [
    "CLEANUP_TASK_NAME",
    "TaskIQSettings",
    "broker",
    "cleanup_deleted_instances",
    "get_broker",
    "get_cleanup_worker",
    "get_result_backend",
    "get_scheduler",
    "get_taskiq_settings",
    "lifespan_contribution",
    "register_cleanup_worker",
    "scheduler",
]
