"""Lifespan composition for worker and service processes.

Composes multiple :class:`~expurgo.foundation.application.LifespanContribution`
hooks into a single async context manager.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

from expurgo.foundation.application.contributions import LifespanContribution
from expurgo.foundation.application.discovery import LIFESPAN_GROUP, discover

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

logger = logging.getLogger(__name__)


def compose_lifespan(
    hooks: list[LifespanContribution],
) -> Callable[[Any], AbstractAsyncContextManager[None]]:
    """Create a composite lifespan from ordered :class:`LifespanContribution` hooks.

    Hooks are sorted by priority (ascending). Lower priority hooks start first
    and shut down last (stack semantics via :class:`AsyncExitStack`).

    Args:
        hooks: List of LifespanContribution instances.

    Returns:
        An async context manager factory taking the host application object.
    """
    sorted_hooks = sorted(hooks, key=lambda h: h.priority)

    @asynccontextmanager
    async def lifespan(app: Any) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for hook_contrib in sorted_hooks:
                logger.info(
                    "Entering lifespan hook (priority=%d): %r",
                    hook_contrib.priority,
                    hook_contrib.hook,
                )
                await stack.enter_async_context(hook_contrib.hook(app))
            yield

    return lifespan


def discover_lifespan(
    *,
    exclude_names: frozenset[str] = frozenset(),
) -> Callable[[Any], AbstractAsyncContextManager[None]]:
    """Compose every installed ``expurgo.lifespan`` contribution.

    Args:
        exclude_names: Entry point names to leave out (e.g. in tests).
    """
    hooks = [
        c.value
        for c in discover(LIFESPAN_GROUP, exclude_names=exclude_names)
        if isinstance(c.value, LifespanContribution)
    ]
    return compose_lifespan(hooks)
