"""Deletion lifespan hook: ensure the index tables exist at startup.

Priority 100 runs after persistence (75) has verified the database and
before the TaskIQ broker (150) starts accepting cleanup tasks.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from expurgo.domain.deletion.infrastructure.index_store import SqlIndexStore
from expurgo.foundation.application import LIFESPAN_PRIORITY_DELETION, LifespanContribution
from expurgo.infra.persistence.database import get_session_factory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _deletion_lifespan(app: Any) -> AsyncIterator[None]:
    """Create the instance and deleted_instance tables if missing.

    Args:
        app: The host application instance (unused but required by protocol).
    """
    await SqlIndexStore(get_session_factory()).ensure_tables_exist()
    logger.info("deletion_lifespan: index tables ready")
    yield


lifespan_contribution = LifespanContribution(
    hook=_deletion_lifespan,
    priority=LIFESPAN_PRIORITY_DELETION,
)
