"""Expurgo Foundation Application — lifecycle composition and discovery."""

from expurgo.foundation.application.contributions import (
    LIFESPAN_PRIORITY_DELETION,
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LIFESPAN_PRIORITY_PERSISTENCE,
    LIFESPAN_PRIORITY_TASKIQ,
    LifespanContribution,
)
from expurgo.foundation.application.discovery import (
    LIFESPAN_GROUP,
    DiscoveredContribution,
    discover,
)
from expurgo.foundation.application.lifespan import compose_lifespan, discover_lifespan

__all__ = [
    "LIFESPAN_GROUP",
    "LIFESPAN_PRIORITY_DELETION",
    "LIFESPAN_PRIORITY_OBSERVABILITY",
    "LIFESPAN_PRIORITY_PERSISTENCE",
    "LIFESPAN_PRIORITY_TASKIQ",
    "DiscoveredContribution",
    "LifespanContribution",
    "compose_lifespan",
    "discover",
    "discover_lifespan",
]
