"""
Integration tests for the health endpoint.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from imagecache.api.main import app
from imagecache.services.blob_store import BlobStore

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_container(blob_store: BlobStore):
    blob_store.write_atomic("a" * 32, b"12345")
    with patch("imagecache.api.routers.health.container") as container:
        container.blob_store = blob_store
        yield container


class TestHealthEndpoint:
    """Tests for GET /api/v1/health."""

    async def test_healthy(
        self,
        async_client: AsyncClient,
        mock_container: MagicMock,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        async def get_session():
            async with session_factory() as session:
                yield session

        with patch("imagecache.api.routers.health.db_manager") as db_manager:
            db_manager.get_session = get_session
            response = await async_client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["cache_dir_writable"] is True
        assert data["checks"]["cache_files"] == 1
        assert data["checks"]["cache_bytes"] == 5

    async def test_database_down(
        self, async_client: AsyncClient, mock_container: MagicMock
    ) -> None:
        async def get_session():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
            yield  # pragma: no cover

        with patch("imagecache.api.routers.health.db_manager") as db_manager:
            db_manager.get_session = get_session
            response = await async_client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "unhealthy"
        assert data["database"] == "disconnected"
        assert data["checks"]["database_latency_ms"] is None
