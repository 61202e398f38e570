"""
Pytest configuration and fixtures for imagecache tests.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from imagecache.config.settings import Settings
from imagecache.db.models import Base
from imagecache.services.blob_store import BlobStore
from imagecache.services.cache_config import ImageCacheConfig
from imagecache.services.hasher import Hasher
from tests.factories.image_factory import make_image_bytes

TEST_SALT = "0123456789abcdef0123456789abcdef"
TEST_SITE_URL = "https://forum.test"


@pytest.fixture
def mock_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite database and cache dir."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'settings.db'}",
        site_url=TEST_SITE_URL,
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created.

    A file (not ``:memory:``) database lets several sessions see each
    other's committed writes.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'imagecache.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def cache_config(cache_dir: Path) -> ImageCacheConfig:
    """Image cache configuration rooted in a temporary directory."""
    return ImageCacheConfig(
        cache_dir=cache_dir,
        site_url=TEST_SITE_URL,
        max_width=64,
        max_height=48,
        fetch_timeout=2.0,
    )


@pytest.fixture
def blob_store(cache_dir: Path) -> BlobStore:
    return BlobStore(cache_dir)


@pytest.fixture
def hasher() -> Hasher:
    return Hasher(TEST_SALT)


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    return make_image_bytes("PNG", size=(32, 24))
