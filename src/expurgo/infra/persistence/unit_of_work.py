"""SQLAlchemy-backed unit-of-work scope for one cleanup pass.

One ``AsyncSession`` is opened per pass and published through a
ContextVar so index store calls made during the pass share it. On exit
the session is committed if the scope was completed and rolled back
otherwise, then closed. This is resource scoping: blob deletes already
issued during the pass are never undone, and a rolled-back purge simply
leaves the record for the next pass.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

# Session shared by the active unit of work - None outside a pass
_current_session: ContextVar[AsyncSession | None] = ContextVar(
    "unit_of_work_session", default=None
)


def get_current_session() -> AsyncSession | None:
    """Return the session of the active unit of work, if any."""
    return _current_session.get()


class SqlTransactionScope:
    """A live unit of work wrapping one session.

    Attributes:
        session: The shared AsyncSession.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._completed = False

    @property
    def completed(self) -> bool:
        """Whether :meth:`complete` has been called."""
        return self._completed

    def complete(self) -> None:
        """Commit the session when the scope exits."""
        self._completed = True


class SqlTransactionHandler:
    """Opens :class:`SqlTransactionScope` instances from a session factory.

    Args:
        session_factory: Async session factory for the index database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def begin_transaction(self) -> AsyncIterator[SqlTransactionScope]:
        """Open a session-backed scope, released on every exit path."""
        async with self._session_factory() as session:
            scope = SqlTransactionScope(session)
            token = _current_session.set(session)
            try:
                yield scope
            except BaseException:
                await session.rollback()
                raise
            else:
                if scope.completed:
                    await session.commit()
                else:
                    logger.debug("unit_of_work_not_completed: rolling back")
                    await session.rollback()
            finally:
                _current_session.reset(token)
