"""Domain port interfaces for hexagonal architecture.

Ports define the store contracts that deletion scheduling and cleanup use.
Implementations (adapters) live in infrastructure.
"""

from expurgo.foundation.domain.ports.blob_store import FileStorePort, MetadataStorePort
from expurgo.foundation.domain.ports.index_store import IndexStorePort, ParkedRecordStorePort
from expurgo.foundation.domain.ports.transaction import (
    TransactionHandlerPort,
    TransactionScopePort,
)

__all__ = [
    "FileStorePort",
    "IndexStorePort",
    "MetadataStorePort",
    "ParkedRecordStorePort",
    "TransactionHandlerPort",
    "TransactionScopePort",
]
