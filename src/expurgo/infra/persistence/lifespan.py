"""Persistence lifespan hook for startup/shutdown resource management.

Handles:
- Database health check on startup (SELECT 1)
- Connection budget warning
- Engine disposal on shutdown

Priority 75 ensures persistence starts AFTER observability (50)
but BEFORE the deletion schema (100) and the TaskIQ broker (150).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from expurgo.foundation.application import LIFESPAN_PRIORITY_PERSISTENCE, LifespanContribution
from expurgo.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

# Connections a single worker process should not exceed
_CONNECTION_BUDGET = 40


@asynccontextmanager
async def _persistence_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage persistence resources across the process lifecycle.

    Startup:
        1. Execute ``SELECT 1`` health check on the engine.
        2. Warn when the pool budget is larger than one worker needs.

    Shutdown:
        1. Dispose the engine and connection pool.

    Args:
        app: The host application instance (unused but required by protocol).
    """
    manager = get_database_manager()

    engine = manager.get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("persistence_lifespan: database health check passed")

    settings = manager.settings
    total_budget = settings.pool_size + settings.max_overflow
    if total_budget > _CONNECTION_BUDGET:
        logger.warning(
            "persistence_lifespan: connection budget %d exceeds %d. "
            "Cleanup passes run sequentially; consider smaller pools.",
            total_budget,
            _CONNECTION_BUDGET,
        )
    else:
        logger.info("persistence_lifespan: connection budget %d", total_budget)

    try:
        yield
    finally:
        await manager.dispose()
        logger.info("persistence_lifespan: database engine disposed")


lifespan_contribution = LifespanContribution(
    hook=_persistence_lifespan,
    priority=LIFESPAN_PRIORITY_PERSISTENCE,
)
