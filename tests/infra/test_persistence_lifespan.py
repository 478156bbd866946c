"""Unit tests for expurgo.infra.persistence.lifespan."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from expurgo.foundation.application import LifespanContribution
from expurgo.infra.persistence.database import DatabaseSettings
from expurgo.infra.persistence.lifespan import _persistence_lifespan, lifespan_contribution


def _manager(settings: DatabaseSettings | None = None) -> MagicMock:
    conn = MagicMock()
    conn.execute = AsyncMock()
    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    manager = MagicMock()
    manager.get_engine.return_value = engine
    manager.settings = settings or DatabaseSettings()
    manager.dispose = AsyncMock()
    return manager


@pytest.mark.unit
class TestLifespanContribution:
    def test_is_lifespan_contribution(self) -> None:
        assert isinstance(lifespan_contribution, LifespanContribution)

    def test_priority_is_75(self) -> None:
        assert lifespan_contribution.priority == 75


@pytest.mark.unit
class TestPersistenceLifespan:
    @pytest.mark.asyncio
    @patch("expurgo.infra.persistence.lifespan.get_database_manager")
    async def test_health_check_then_dispose(self, mock_get_manager: MagicMock) -> None:
        manager = _manager()
        mock_get_manager.return_value = manager
        conn = manager.get_engine.return_value.connect.return_value.__aenter__.return_value

        async with _persistence_lifespan(MagicMock()):
            conn.execute.assert_awaited_once()
            assert str(conn.execute.await_args.args[0]) == "SELECT 1"
            manager.dispose.assert_not_called()

        manager.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("expurgo.infra.persistence.lifespan.get_database_manager")
    async def test_dispose_on_exception(self, mock_get_manager: MagicMock) -> None:
        manager = _manager()
        mock_get_manager.return_value = manager

        with pytest.raises(ValueError, match="test error"):
            async with _persistence_lifespan(MagicMock()):
                raise ValueError("test error")

        manager.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("expurgo.infra.persistence.lifespan.get_database_manager")
    async def test_warns_on_large_connection_budget(
        self,
        mock_get_manager: MagicMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        mock_get_manager.return_value = _manager(DatabaseSettings(pool_size=40, max_overflow=10))

        with caplog.at_level("WARNING", logger="expurgo.infra.persistence.lifespan"):
            async with _persistence_lifespan(MagicMock()):
                pass

        assert "connection budget 50 exceeds 40" in caplog.text
