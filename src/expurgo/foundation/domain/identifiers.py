"""Identifier value objects for imaging entities.

UIDs are treated as opaque strings. Their length and character set are
validated by request handling before they reach this package.

Example:
    >>> from expurgo.foundation.domain import DeletionScope, VersionedInstanceIdentifier
    >>> DeletionScope.for_series("1.2.3", "1.2.3.4").level
    <ResourceType.SERIES: 'series'>
    >>> VersionedInstanceIdentifier("default", "1.2.3", "1.2.3.4", "1.2.3.4.5", version=7)
    VersionedInstanceIdentifier(partition_name='default', ...)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ResourceType(StrEnum):
    """Granularity of a deletion request."""

    STUDY = "study"
    SERIES = "series"
    INSTANCE = "instance"


@dataclass(frozen=True, slots=True)
class InstanceIdentifier:
    """Logical identity of an imaging instance within a partition.

    Attributes:
        partition_name: Tenant/namespace the instance belongs to.
        study_instance_uid: Study UID.
        series_instance_uid: Series UID.
        sop_instance_uid: SOP instance UID.
    """

    partition_name: str
    study_instance_uid: str
    series_instance_uid: str
    sop_instance_uid: str

    def __str__(self) -> str:
        return (
            f"{self.partition_name}/{self.study_instance_uid}/"
            f"{self.series_instance_uid}/{self.sop_instance_uid}"
        )


@dataclass(frozen=True, slots=True)
class VersionedInstanceIdentifier:
    """An instance identity pinned to one stored generation.

    ``version`` is the watermark assigned when the content was created. A
    deleted-then-recreated instance shares the UIDs of the original but
    carries a newer version, so physical deletes addressed by a versioned
    identifier never touch the newer generation's data.

    Attributes:
        partition_name: Tenant/namespace the instance belongs to.
        study_instance_uid: Study UID.
        series_instance_uid: Series UID.
        sop_instance_uid: SOP instance UID.
        version: Monotonically increasing content watermark.
    """

    partition_name: str
    study_instance_uid: str
    series_instance_uid: str
    sop_instance_uid: str
    version: int

    @property
    def instance(self) -> InstanceIdentifier:
        """The unversioned identity of this instance."""
        return InstanceIdentifier(
            partition_name=self.partition_name,
            study_instance_uid=self.study_instance_uid,
            series_instance_uid=self.series_instance_uid,
            sop_instance_uid=self.sop_instance_uid,
        )

    def __str__(self) -> str:
        return f"{self.instance}@{self.version}"


@dataclass(frozen=True, slots=True)
class DeletionScope:
    """The set of instances a deletion request covers.

    A study scope names only the study UID, a series scope adds the series
    UID, and an instance scope names all three.

    Raises:
        ValueError: If an instance UID is given without a series UID.
    """

    study_instance_uid: str
    series_instance_uid: str | None = None
    sop_instance_uid: str | None = None

    def __post_init__(self) -> None:
        if self.sop_instance_uid is not None and self.series_instance_uid is None:
            msg = "An instance deletion scope requires a series_instance_uid"
            raise ValueError(msg)

    @classmethod
    def for_study(cls, study_instance_uid: str) -> DeletionScope:
        return cls(study_instance_uid)

    @classmethod
    def for_series(cls, study_instance_uid: str, series_instance_uid: str) -> DeletionScope:
        return cls(study_instance_uid, series_instance_uid)

    @classmethod
    def for_instance(
        cls,
        study_instance_uid: str,
        series_instance_uid: str,
        sop_instance_uid: str,
    ) -> DeletionScope:
        return cls(study_instance_uid, series_instance_uid, sop_instance_uid)

    @property
    def level(self) -> ResourceType:
        """Granularity of this scope."""
        if self.sop_instance_uid is not None:
            return ResourceType.INSTANCE
        if self.series_instance_uid is not None:
            return ResourceType.SERIES
        return ResourceType.STUDY
