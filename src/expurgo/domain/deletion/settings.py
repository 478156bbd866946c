"""Deleted-instance cleanup configuration using Pydantic settings.

Settings are loaded from environment variables with the
``DELETED_INSTANCE_CLEANUP_`` prefix. Durations are ISO 8601 strings
(``PT1H``, ``P3D``).
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeletedInstanceCleanupSettings(BaseSettings):
    """Policy for scheduling and reconciling instance deletions.

    Environment Variables:
        DELETED_INSTANCE_CLEANUP_DELETE_DELAY: Grace period before a scheduled
            deletion becomes eligible for physical removal (default: 3 days)
        DELETED_INSTANCE_CLEANUP_BATCH_SIZE: Records discovered per pass (default: 10)
        DELETED_INSTANCE_CLEANUP_MAX_RETRIES: Failed attempts tolerated before a
            record is parked (default: 5)
        DELETED_INSTANCE_CLEANUP_RETRY_BACK_OFF: Fixed delay between attempts
            (default: 1 day)
        DELETED_INSTANCE_CLEANUP_POLLING_INTERVAL: Idle wait between drains in
            the long-running worker (default: 3 minutes)
        DELETED_INSTANCE_CLEANUP_MAX_PASSES_PER_DRAIN: Upper bound on back-to-back
            passes when batches keep coming back full (default: 100)

    Example:
        >>> settings = DeletedInstanceCleanupSettings()
        >>> settings.retry_back_off
        datetime.timedelta(days=1)
    """

    model_config = SettingsConfigDict(
        env_prefix="DELETED_INSTANCE_CLEANUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    delete_delay: timedelta = Field(
        default=timedelta(days=3),
        description="Grace period between scheduling and physical deletion",
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=10_000,
        description="Pending-deletion records discovered per pass",
    )
    max_retries: int = Field(
        default=5,
        ge=0,
        description="Failed attempts tolerated before a record is parked",
    )
    retry_back_off: timedelta = Field(
        default=timedelta(days=1),
        description="Fixed delay added to now after each failed attempt",
    )
    polling_interval: timedelta = Field(
        default=timedelta(minutes=3),
        description="Idle wait between drains in the long-running worker",
    )
    max_passes_per_drain: int = Field(
        default=100,
        ge=1,
        description="Upper bound on consecutive passes in one drain",
    )


@lru_cache(maxsize=1)
def get_cleanup_settings() -> DeletedInstanceCleanupSettings:
    """Get cached cleanup settings singleton.

    Returns:
        DeletedInstanceCleanupSettings instance loaded from environment.
    """
    return DeletedInstanceCleanupSettings()
