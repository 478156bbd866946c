"""Port interfaces for the metadata and file blob stores.

Both deletes are idempotent: deleting a blob that never existed, or that
an earlier attempt already removed, succeeds as a no-op.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from expurgo.foundation.domain.identifiers import VersionedInstanceIdentifier


@runtime_checkable
class FileStorePort(Protocol):
    """Port for the binary (pixel data) store."""

    async def delete_file_if_exists(self, identifier: VersionedInstanceIdentifier) -> None:
        """Delete the file for one instance generation, if present."""
        ...


@runtime_checkable
class MetadataStorePort(Protocol):
    """Port for the descriptive metadata store."""

    async def delete_instance_metadata_if_exists(
        self,
        identifier: VersionedInstanceIdentifier,
    ) -> None:
        """Delete the metadata document for one instance generation, if present."""
        ...
