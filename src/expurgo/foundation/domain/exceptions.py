"""Domain exception hierarchy for type-safe error handling.

Exceptions carry a machine-readable error code and structured context so
that store adapters, the deletion scheduler and the cleanup reconciler can
log and classify failures consistently.

Example:
    >>> from expurgo.foundation.domain.exceptions import StoreUnavailableError
    >>> raise StoreUnavailableError("index", "connection refused")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "DomainError",
    "NotFoundError",
    "StoreUnavailableError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Attributes:
        error_code: Machine-readable error code.
        message: Human-readable error description.
        context: Structured debugging information (identifiers, store names).
        transient: Whether retrying the failed call may succeed.

    Example:
        >>> raise DomainError("Operation failed", context={"partition_name": "default"})
        DomainError: Operation failed (partition_name=default)
    """

    error_code: str = "DOMAIN_ERROR"

    #: Whether this error type is considered transient (retryable).
    transient: bool = False

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist.

    Raised by the index store when a deletion is scheduled for a scope that
    matches no stored instance, or when a pending-deletion record addressed
    by a versioned identifier is missing.

    Example:
        >>> raise NotFoundError("Study", "1.2.840.113619.2.55")
        NotFoundError: Study not found: 1.2.840.113619.2.55
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        **extra_context: Any,
    ) -> None:
        """Initialize not found error.

        Args:
            resource_type: Type of resource (e.g., "Study", "DeletedInstance").
            resource_id: Identifier of the missing resource.
            **extra_context: Additional debugging context (e.g., partition_name).
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found: {resource_id}"
        context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            **extra_context,
        }
        super().__init__(message, context)


class StoreUnavailableError(DomainError):
    """Raised when a backing store cannot be reached or fails to respond.

    Typically transient: the store may recover before the next attempt.

    Example:
        >>> raise StoreUnavailableError("index", "connection refused")
        StoreUnavailableError: Store 'index' unavailable: connection refused (store=index)
    """

    error_code: str = "STORE_UNAVAILABLE"
    transient: bool = True

    def __init__(self, store: str, reason: str, **extra_context: Any) -> None:
        """Initialize store unavailable error.

        Args:
            store: Name of the unavailable store ("index", "metadata", "file").
            reason: Human-readable failure reason.
            **extra_context: Additional debugging context.
        """
        self.store = store
        self.reason = reason
        message = f"Store '{store}' unavailable: {reason}"
        super().__init__(message, {"store": store, **extra_context})
