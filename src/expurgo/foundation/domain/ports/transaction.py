"""Port interfaces for the unit-of-work boundary around a cleanup pass.

The boundary is a scoped resource, not a rollback mechanism: stores may
share a connection or session through it, and it is always released when
the pass ends, including on error and cancellation.

Example:
    >>> async def run(handler: TransactionHandlerPort) -> None:
    ...     async with handler.begin_transaction() as scope:
    ...         ...
    ...         scope.complete()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager


@runtime_checkable
class TransactionScopePort(Protocol):
    """A live unit of work."""

    def complete(self) -> None:
        """Mark the unit of work as committed when the scope exits."""
        ...


@runtime_checkable
class TransactionHandlerPort(Protocol):
    """Factory for unit-of-work scopes."""

    def begin_transaction(self) -> AbstractAsyncContextManager[TransactionScopePort]:
        """Open a scope. Exiting it releases the underlying resources."""
        ...
