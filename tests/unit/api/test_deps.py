"""Unit tests for API dependencies."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from imagecache.api.deps import get_db, get_image_proxy

# CRITICAL: This line ensures async tests work with coverage
pytestmark = pytest.mark.asyncio


class TestGetDb:
    """Tests for get_db dependency."""

    async def test_get_db_yields_session(self) -> None:
        """Test that get_db yields a database session."""
        mock_session = AsyncMock()

        async def mock_get_session():
            yield mock_session

        with patch("imagecache.api.deps.db_manager") as mock_db:
            mock_db.get_session = mock_get_session

            async for session in get_db():
                assert session == mock_session


class TestGetImageProxy:
    """Tests for get_image_proxy dependency."""

    async def test_delegates_to_container(self) -> None:
        session = AsyncMock()
        proxy = MagicMock()

        with patch("imagecache.api.deps.container") as mock_container:
            mock_container.create_image_proxy = AsyncMock(return_value=proxy)

            assert await get_image_proxy(session) is proxy

        mock_container.create_image_proxy.assert_awaited_once_with(session)
