"""Pending-deletion records and their retry ledger.

A pending-deletion record lives in the index store from the moment a
deletion is scheduled until every physical delete has succeeded and the
record is purged. Its ``retry_count`` and ``cleanup_after`` fields form the
retry ledger that the cleanup reconciler advances on failure.

Lifecycle::

    SCHEDULED -> ATTEMPTING -> PURGED
                            -> RETRYING -> ATTEMPTING (after the backoff)
                            -> PARKED   (retry budget exhausted)

The state is not stored. A record is due once ``cleanup_after`` has passed
and parked once ``retry_count`` exceeds the retry budget of the pass that
looks at it; a purged record no longer exists.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from expurgo.foundation.domain.identifiers import VersionedInstanceIdentifier

#: Source of the current time. Injected so tests can freeze the clock.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class PendingDeletionRecord:
    """An instance generation awaiting physical deletion.

    Attributes:
        identifier: The versioned instance to delete.
        cleanup_after: Instant after which physical deletion may be attempted.
        retry_count: Failed attempts so far. Never decreases until purge,
            except through an explicit operator requeue.
        created_at: When the deletion was scheduled.
    """

    identifier: VersionedInstanceIdentifier
    cleanup_after: datetime
    retry_count: int = 0
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            msg = f"retry_count must be non-negative, got {self.retry_count}"
            raise ValueError(msg)
