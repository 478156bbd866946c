"""Expurgo Foundation Domain -- pure Python domain primitives.

Identifiers, the pending-deletion record and its retry ledger, the
exception hierarchy, and the store port interfaces.
"""

from expurgo.foundation.domain.exceptions import (
    DomainError,
    NotFoundError,
    StoreUnavailableError,
)
from expurgo.foundation.domain.identifiers import (
    DeletionScope,
    InstanceIdentifier,
    ResourceType,
    VersionedInstanceIdentifier,
)
from expurgo.foundation.domain.pending_deletion import (
    Clock,
    PendingDeletionRecord,
    utc_now,
)
from expurgo.foundation.domain.ports import (
    FileStorePort,
    IndexStorePort,
    MetadataStorePort,
    ParkedRecordStorePort,
    TransactionHandlerPort,
    TransactionScopePort,
)

__all__ = [
    "Clock",
    "DeletionScope",
    "DomainError",
    "FileStorePort",
    "IndexStorePort",
    "InstanceIdentifier",
    "MetadataStorePort",
    "NotFoundError",
    "ParkedRecordStorePort",
    "PendingDeletionRecord",
    "ResourceType",
    "StoreUnavailableError",
    "TransactionHandlerPort",
    "TransactionScopePort",
    "VersionedInstanceIdentifier",
    "utc_now",
]
