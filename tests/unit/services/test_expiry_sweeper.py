"""
Tests for the expiry sweeper.
"""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.db.models import ImageCacheEntry
from imagecache.repositories.image_cache_repository import ImageCacheRepository
from imagecache.services.blob_store import BlobStore
from imagecache.services.expiry_sweeper import SECONDS_PER_DAY, ExpirySweeper, SweepResult

pytestmark = pytest.mark.asyncio

NOW = 1_750_000_000


@pytest.fixture
def sweeper(blob_store: BlobStore) -> ExpirySweeper:
    return ExpirySweeper(blob_store, ImageCacheRepository(), clock=lambda: NOW)


async def _seed(
    session: AsyncSession,
    blob_store: BlobStore,
    key: str,
    age_days: float,
    num_fail: int = 0,
    with_blob: bool = True,
) -> None:
    session.add(
        ImageCacheEntry(
            filename=key,
            log_time=int(NOW - age_days * SECONDS_PER_DAY),
            num_fail=num_fail,
        )
    )
    await session.commit()
    if with_blob:
        blob_store.write_atomic(key, b"blob")


class TestExpirySweeper:
    """Tests for ExpirySweeper.sweep."""

    async def test_zero_retention_keeps_everything(
        self, sweeper: ExpirySweeper, blob_store: BlobStore, db_session: AsyncSession
    ) -> None:
        await _seed(db_session, blob_store, "a" * 32, age_days=400)

        result = await sweeper.sweep(db_session, 0)

        assert result == SweepResult()
        assert blob_store.exists("a" * 32)

    async def test_removes_only_expired(
        self, sweeper: ExpirySweeper, blob_store: BlobStore, db_session: AsyncSession
    ) -> None:
        repo = ImageCacheRepository()
        await _seed(db_session, blob_store, "a" * 32, age_days=10)
        await _seed(db_session, blob_store, "b" * 32, age_days=3)
        await _seed(db_session, blob_store, "c" * 32, age_days=8, num_fail=4)

        result = await sweeper.sweep(db_session, 7)

        assert result.removed == 2
        assert result.files_removed == 2
        assert result.cutoff == NOW - 7 * SECONDS_PER_DAY
        assert not blob_store.exists("a" * 32)
        assert not blob_store.exists("c" * 32)
        assert blob_store.exists("b" * 32)
        assert await repo.count(db_session) == 1

    async def test_missing_blob_still_removes_row(
        self, sweeper: ExpirySweeper, blob_store: BlobStore, db_session: AsyncSession
    ) -> None:
        await _seed(db_session, blob_store, "d" * 32, age_days=30, with_blob=False)

        result = await sweeper.sweep(db_session, 1)

        assert result.removed == 1
        assert result.files_removed == 0

    async def test_second_sweep_is_noop(
        self, sweeper: ExpirySweeper, blob_store: BlobStore, db_session: AsyncSession
    ) -> None:
        await _seed(db_session, blob_store, "e" * 32, age_days=30)

        await sweeper.sweep(db_session, 1)
        result = await sweeper.sweep(db_session, 1)

        assert result.removed == 0
        assert result.files_removed == 0
        assert result.cutoff is not None

    async def test_many_entries(
        self, blob_store: BlobStore, db_session: AsyncSession
    ) -> None:
        sweeper = ExpirySweeper(blob_store, clock=lambda: NOW)
        for i in range(1200):
            db_session.add(ImageCacheEntry(filename=f"{i:032x}", log_time=0, num_fail=0))
        await db_session.commit()

        result = await sweeper.sweep(db_session, 1)

        assert result.removed == 1200
        assert await ImageCacheRepository().count(db_session) == 0
