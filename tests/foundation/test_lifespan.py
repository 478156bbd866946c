"""Unit tests for expurgo.foundation.application.lifespan and contributions."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import pytest

from expurgo.foundation.application import (
    LIFESPAN_PRIORITY_DELETION,
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LIFESPAN_PRIORITY_PERSISTENCE,
    LIFESPAN_PRIORITY_TASKIQ,
    DiscoveredContribution,
    LifespanContribution,
    compose_lifespan,
    discover_lifespan,
)


def _recording_hook(order: list[str], name: str):  # type: ignore[no-untyped-def]
    @asynccontextmanager
    async def hook(app: object) -> AsyncIterator[None]:
        order.append(f"{name}_start")
        try:
            yield
        finally:
            order.append(f"{name}_stop")

    return hook


class TestLifespanContribution:
    @pytest.mark.unit
    def test_default_priority(self) -> None:
        assert LifespanContribution(hook=MagicMock()).priority == 500

    @pytest.mark.unit
    def test_priority_constants_are_ordered(self) -> None:
        assert (
            LIFESPAN_PRIORITY_OBSERVABILITY
            < LIFESPAN_PRIORITY_PERSISTENCE
            < LIFESPAN_PRIORITY_DELETION
            < LIFESPAN_PRIORITY_TASKIQ
        )


class TestComposeLifespan:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_hooks_yields_without_error(self) -> None:
        async with compose_lifespan([])(MagicMock()):
            pass

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_hooks_execute_in_priority_order(self) -> None:
        order: list[str] = []
        hooks = [
            LifespanContribution(hook=_recording_hook(order, "b"), priority=200),
            LifespanContribution(hook=_recording_hook(order, "a"), priority=100),
        ]

        async with compose_lifespan(hooks)(MagicMock()):
            assert order == ["a_start", "b_start"]

        # Shutdown is LIFO
        assert order == ["a_start", "b_start", "b_stop", "a_stop"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_app_is_passed_to_hooks(self) -> None:
        received: list[object] = []

        @asynccontextmanager
        async def hook(app: object) -> AsyncIterator[None]:
            received.append(app)
            yield

        app = MagicMock()
        async with compose_lifespan([LifespanContribution(hook=hook)])(app):
            assert received == [app]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_started_hooks_unwind_when_body_raises(self) -> None:
        order: list[str] = []
        lifespan = compose_lifespan([LifespanContribution(hook=_recording_hook(order, "a"))])

        with pytest.raises(RuntimeError, match="boom"):
            async with lifespan(MagicMock()):
                raise RuntimeError("boom")

        assert order == ["a_start", "a_stop"]


class TestDiscoverLifespan:
    @pytest.mark.unit
    @pytest.mark.asyncio
    @patch("expurgo.foundation.application.lifespan.discover")
    async def test_composes_only_lifespan_contributions(self, mock_discover: MagicMock) -> None:
        order: list[str] = []
        mock_discover.return_value = [
            DiscoveredContribution(
                name="late",
                group="expurgo.lifespan",
                value=LifespanContribution(hook=_recording_hook(order, "late"), priority=150),
            ),
            DiscoveredContribution(name="junk", group="expurgo.lifespan", value=object()),
            DiscoveredContribution(
                name="early",
                group="expurgo.lifespan",
                value=LifespanContribution(hook=_recording_hook(order, "early"), priority=50),
            ),
        ]

        async with discover_lifespan(exclude_names=frozenset({"x"}))(MagicMock()):
            pass

        mock_discover.assert_called_once_with("expurgo.lifespan", exclude_names=frozenset({"x"}))
        assert order == ["early_start", "late_start", "late_stop", "early_stop"]
