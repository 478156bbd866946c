"""Expurgo Infra Persistence — engine, session factory, unit of work."""

from expurgo.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    dispose_engine,
    get_database_manager,
    get_engine,
    get_session_factory,
)
from expurgo.infra.persistence.lifespan import lifespan_contribution
from expurgo.infra.persistence.unit_of_work import (
    SqlTransactionHandler,
    SqlTransactionScope,
    get_current_session,
)

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "SqlTransactionHandler",
    "SqlTransactionScope",
    "dispose_engine",
    "get_current_session",
    "get_database_manager",
    "get_engine",
    "get_session_factory",
    "lifespan_contribution",
]
