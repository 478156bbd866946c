"""Infrastructure adapters for deletion scheduling and cleanup."""

from expurgo.domain.deletion.infrastructure.index_store import SqlIndexStore

__all__ = ["SqlIndexStore"]
