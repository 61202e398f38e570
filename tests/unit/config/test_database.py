"""
Tests for database configuration and connection management.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import text

from imagecache.config.database import SQLITE_BUSY_TIMEOUT, DatabaseManager


class TestDatabaseManager:
    """Test DatabaseManager functionality."""

    def test_init(self):
        """Test DatabaseManager initialization."""
        manager = DatabaseManager()
        assert manager._engine is None
        assert manager._session_factory is None

    def test_explicit_url_wins(self):
        manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
        assert manager.database_url == "sqlite+aiosqlite:///:memory:"

    @patch("imagecache.config.database.create_async_engine")
    def test_get_engine(self, mock_create_engine):
        """Test engine creation and reuse."""
        mock_engine = MagicMock()
        mock_create_engine.return_value = mock_engine

        manager = DatabaseManager("postgresql+asyncpg://u:p@db/imagecache")

        assert manager.get_engine() == mock_engine
        assert manager.get_engine() == mock_engine
        assert mock_create_engine.call_count == 1
        assert mock_create_engine.call_args.kwargs["pool_recycle"] == 3600

    @patch("imagecache.config.database.create_async_engine")
    def test_sqlite_engine_has_no_pool_recycle(self, mock_create_engine):
        DatabaseManager("sqlite+aiosqlite:///x.db").get_engine()
        assert "pool_recycle" not in mock_create_engine.call_args.kwargs
        assert mock_create_engine.call_args.kwargs["connect_args"] == {
            "timeout": SQLITE_BUSY_TIMEOUT
        }

    @patch("imagecache.config.database.async_sessionmaker")
    def test_get_session_factory(self, mock_sessionmaker):
        """Test session factory creation and reuse."""
        mock_factory = MagicMock()
        mock_sessionmaker.return_value = mock_factory

        manager = DatabaseManager()
        manager._engine = MagicMock()

        assert manager.get_session_factory() == mock_factory
        assert manager.get_session_factory() == mock_factory
        mock_sessionmaker.assert_called_once()

    @pytest.mark.asyncio
    async def test_close(self):
        """Test closing database connections."""
        mock_engine = AsyncMock()
        manager = DatabaseManager()
        manager._engine = mock_engine
        manager._session_factory = MagicMock()

        await manager.close()

        mock_engine.dispose.assert_called_once()
        assert manager._engine is None
        assert manager._session_factory is None

    @pytest.mark.asyncio
    async def test_close_no_engine(self):
        """Test closing when no engine exists."""
        manager = DatabaseManager()
        await manager.close()

    @pytest.mark.asyncio
    async def test_create_tables_and_session(self, tmp_path: Path):
        """Tables are created and sessions commit against a real database."""
        manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'db.sqlite'}")
        try:
            await manager.create_tables()

            async for session in manager.get_session():
                await session.execute(
                    text("INSERT INTO settings (variable, value) VALUES ('k', 'v')")
                )

            async for session in manager.get_session():
                result = await session.execute(
                    text("SELECT value FROM settings WHERE variable = 'k'")
                )
                assert result.scalar_one() == "v"
        finally:
            await manager.close()
