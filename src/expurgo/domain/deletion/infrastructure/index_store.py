"""PostgreSQL index store for instance records and pending deletions.

Two tables:

- ``instance``: one row per stored instance generation (``watermark``).
- ``deleted_instance``: pending-deletion records with the retry ledger
  (``retry_count``, ``cleanup_after``).

Scheduling moves rows from ``instance`` to ``deleted_instance`` in a
single statement. Inside a cleanup pass every call runs in a SAVEPOINT on
the unit-of-work session, so a failed statement for one record does not
abort the transaction for the rest of the batch. Outside a pass each call
runs in its own committed transaction.

Discovery locks the rows it returns (``FOR UPDATE SKIP LOCKED``) until the
pass commits. A pass that overlaps it, from another worker process, skips
those rows instead of retrying them a second time.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError

from expurgo.foundation.domain.exceptions import NotFoundError, StoreUnavailableError
from expurgo.foundation.domain.identifiers import VersionedInstanceIdentifier
from expurgo.foundation.domain.pending_deletion import PendingDeletionRecord
from expurgo.infra.persistence.unit_of_work import get_current_session

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from expurgo.foundation.domain.identifiers import DeletionScope

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = (
    """
    CREATE TABLE IF NOT EXISTS instance (
        partition_name VARCHAR(64) NOT NULL,
        study_instance_uid VARCHAR(64) NOT NULL,
        series_instance_uid VARCHAR(64) NOT NULL,
        sop_instance_uid VARCHAR(64) NOT NULL,
        watermark BIGINT NOT NULL,
        created_date TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        PRIMARY KEY (partition_name, study_instance_uid, series_instance_uid, sop_instance_uid)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS deleted_instance (
        partition_name VARCHAR(64) NOT NULL,
        study_instance_uid VARCHAR(64) NOT NULL,
        series_instance_uid VARCHAR(64) NOT NULL,
        sop_instance_uid VARCHAR(64) NOT NULL,
        watermark BIGINT NOT NULL,
        deleted_date TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
        retry_count INTEGER NOT NULL DEFAULT 0,
        cleanup_after TIMESTAMP WITH TIME ZONE NOT NULL,
        PRIMARY KEY (
            partition_name, study_instance_uid, series_instance_uid, sop_instance_uid, watermark
        )
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_deleted_instance_cleanup_after
        ON deleted_instance (cleanup_after, retry_count)
    """,
)

_SCHEDULE_SQL = """
WITH removed AS (
    DELETE FROM instance
    WHERE partition_name = :partition_name
      AND study_instance_uid = :study_instance_uid
      AND (CAST(:series_instance_uid AS VARCHAR) IS NULL
           OR series_instance_uid = :series_instance_uid)
      AND (CAST(:sop_instance_uid AS VARCHAR) IS NULL
           OR sop_instance_uid = :sop_instance_uid)
    RETURNING partition_name, study_instance_uid, series_instance_uid,
              sop_instance_uid, watermark
)
INSERT INTO deleted_instance (
    partition_name, study_instance_uid, series_instance_uid,
    sop_instance_uid, watermark, cleanup_after
)
SELECT partition_name, study_instance_uid, series_instance_uid,
       sop_instance_uid, watermark, :cleanup_after
FROM removed
ON CONFLICT DO NOTHING
RETURNING watermark
"""

_RETRIEVE_DUE_SQL = """
SELECT partition_name, study_instance_uid, series_instance_uid, sop_instance_uid, watermark
FROM deleted_instance
WHERE cleanup_after <= CURRENT_TIMESTAMP AND retry_count <= :max_retries
ORDER BY cleanup_after, watermark
LIMIT :batch_size
FOR UPDATE SKIP LOCKED
"""

_RETRIEVE_PARKED_SQL = """
SELECT partition_name, study_instance_uid, series_instance_uid, sop_instance_uid,
       watermark, cleanup_after, retry_count, deleted_date
FROM deleted_instance
WHERE retry_count > :max_retries
ORDER BY deleted_date, watermark
LIMIT :limit
"""

_KEY_PREDICATE = (
    "partition_name = :partition_name "
    "AND study_instance_uid = :study_instance_uid "
    "AND series_instance_uid = :series_instance_uid "
    "AND sop_instance_uid = :sop_instance_uid "
    "AND watermark = :watermark"
)

_PURGE_SQL = f"DELETE FROM deleted_instance WHERE {_KEY_PREDICATE}"  # noqa: S608

_INCREMENT_RETRY_SQL = (
    "UPDATE deleted_instance "  # noqa: S608
    "SET retry_count = retry_count + 1, cleanup_after = :cleanup_after "
    f"WHERE {_KEY_PREDICATE} "
    "RETURNING retry_count"
)

_RESET_RETRY_SQL = (
    "UPDATE deleted_instance "  # noqa: S608
    "SET retry_count = 0, cleanup_after = :cleanup_after "
    f"WHERE {_KEY_PREDICATE}"
)


def _key_params(identifier: VersionedInstanceIdentifier) -> dict[str, Any]:
    return {
        "partition_name": identifier.partition_name,
        "study_instance_uid": identifier.study_instance_uid,
        "series_instance_uid": identifier.series_instance_uid,
        "sop_instance_uid": identifier.sop_instance_uid,
        "watermark": identifier.version,
    }


def _identifier_from_row(row: Any) -> VersionedInstanceIdentifier:
    return VersionedInstanceIdentifier(
        partition_name=row[0],
        study_instance_uid=row[1],
        series_instance_uid=row[2],
        sop_instance_uid=row[3],
        version=int(row[4]),
    )


class SqlIndexStore:
    """Index store backed by PostgreSQL through SQLAlchemy async sessions.

    Implements both ``IndexStorePort`` and ``ParkedRecordStorePort``.

    Args:
        session_factory: Async session factory used outside a unit of work.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session for one store call.

        Connection-level driver errors are translated to
        :class:`StoreUnavailableError`.
        """
        try:
            shared = get_current_session()
            if shared is not None:
                async with shared.begin_nested():
                    yield shared
            else:
                async with self._session_factory() as session, session.begin():
                    yield session
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailableError("index", str(exc.orig or exc)) from exc

    async def ensure_tables_exist(self) -> None:
        """Create the index tables if they do not exist (idempotent)."""
        async with self._session() as session:
            for statement in _CREATE_TABLES_SQL:
                await session.execute(text(statement))
        logger.info("index_store_tables_ensured")

    async def write_pending_deletion(
        self,
        partition_name: str,
        scope: DeletionScope,
        cleanup_after: datetime,
    ) -> None:
        async with self._session() as session:
            result = await session.execute(
                text(_SCHEDULE_SQL),
                {
                    "partition_name": partition_name,
                    "study_instance_uid": scope.study_instance_uid,
                    "series_instance_uid": scope.series_instance_uid,
                    "sop_instance_uid": scope.sop_instance_uid,
                    "cleanup_after": cleanup_after,
                },
            )
            scheduled = len(result.fetchall())
            if scheduled == 0:
                raise NotFoundError(
                    scope.level.value.capitalize(),
                    scope.sop_instance_uid
                    or scope.series_instance_uid
                    or scope.study_instance_uid,
                    partition_name=partition_name,
                )
        logger.debug(
            "pending_deletion_written",
            extra={"partition_name": partition_name, "scheduled": scheduled},
        )

    async def retrieve_deleted_instances(
        self,
        batch_size: int,
        max_retries: int,
    ) -> list[VersionedInstanceIdentifier]:
        async with self._session() as session:
            result = await session.execute(
                text(_RETRIEVE_DUE_SQL),
                {"batch_size": batch_size, "max_retries": max_retries},
            )
            return [_identifier_from_row(row) for row in result.fetchall()]

    async def delete_deleted_instance(self, identifier: VersionedInstanceIdentifier) -> None:
        async with self._session() as session:
            await session.execute(text(_PURGE_SQL), _key_params(identifier))

    async def increment_deleted_instance_retry(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime,
    ) -> int:
        async with self._session() as session:
            result = await session.execute(
                text(_INCREMENT_RETRY_SQL),
                {**_key_params(identifier), "cleanup_after": cleanup_after},
            )
            row = result.fetchone()
            if row is None:
                raise NotFoundError("DeletedInstance", str(identifier))
            return int(row[0])

    async def retrieve_parked_instances(
        self,
        max_retries: int,
        limit: int,
    ) -> list[PendingDeletionRecord]:
        async with self._session() as session:
            result = await session.execute(
                text(_RETRIEVE_PARKED_SQL),
                {"max_retries": max_retries, "limit": limit},
            )
            return [
                PendingDeletionRecord(
                    identifier=_identifier_from_row(row),
                    cleanup_after=row[5],
                    retry_count=int(row[6]),
                    created_at=row[7],
                )
                for row in result.fetchall()
            ]

    async def reset_deleted_instance_retry(
        self,
        identifier: VersionedInstanceIdentifier,
        cleanup_after: datetime,
    ) -> None:
        async with self._session() as session:
            result = await session.execute(
                text(_RESET_RETRY_SQL),
                {**_key_params(identifier), "cleanup_after": cleanup_after},
            )
            row_count: int = getattr(result, "rowcount", 0)
            if row_count == 0:
                raise NotFoundError("DeletedInstance", str(identifier))
