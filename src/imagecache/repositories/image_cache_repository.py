"""
Image cache index repository.

Owns the ``image_cache`` table: lookup, success upsert, first-failure
insert, the compare-and-increment used to serialise retries, stale-touch,
deletion and the expiry scan.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from typing import List

from sqlalchemy import and_, case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.db.models import ImageCacheEntry as ImageCacheEntryDB
from imagecache.models.cache_state import (
    CacheIndexStats,
    Failed,
    Succeeded,
    Unseen,
    state_from_row,
)
from imagecache.repositories.base import BaseSQLAlchemyRepository

logger = logging.getLogger(__name__)

# SQLite caps bound parameters per statement
_DELETE_CHUNK_SIZE = 500


class ImageCacheRepository(BaseSQLAlchemyRepository[ImageCacheEntryDB]):
    """Repository for the image cache index."""

    def __init__(self) -> None:
        super().__init__(ImageCacheEntryDB)

    async def lookup(self, session: AsyncSession, key: str) -> Unseen | Succeeded | Failed:
        """Return the typed cache state for ``key``."""
        result = await session.execute(
            select(ImageCacheEntryDB.log_time, ImageCacheEntryDB.num_fail).where(
                ImageCacheEntryDB.filename == key
            )
        )
        row = result.first()
        if row is None:
            return Unseen()
        return state_from_row(row[0] or 0, row[1] or 0)

    async def upsert_success(self, session: AsyncSession, key: str, now: int) -> None:
        """Insert or replace ``key`` as succeeded at ``now``."""
        stmt = self._insert(session).values(filename=key, log_time=now, num_fail=0)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ImageCacheEntryDB.filename],
            set_={"log_time": now, "num_fail": 0},
        )
        await session.execute(stmt)
        await session.flush()

    async def insert_failure_if_absent(
        self, session: AsyncSession, key: str, now: int
    ) -> bool:
        """Insert ``key`` with one failure unless a row already exists.

        Returns
        -------
        bool
            ``True`` if this call created the row.
        """
        stmt = (
            self._insert(session)
            .values(filename=key, log_time=now, num_fail=1)
            .on_conflict_do_nothing(index_elements=[ImageCacheEntryDB.filename])
        )
        result = await session.execute(stmt)
        await session.flush()
        return (result.rowcount or 0) > 0

    async def increment_failure_if_matches(
        self, session: AsyncSession, key: str, expected_count: int
    ) -> bool:
        """Increment ``num_fail`` only if it still equals ``expected_count``.

        Callers commit before starting the download so the winner holds no
        transaction open while it fetches.

        Returns
        -------
        bool
            ``True`` if this caller won the increment.
        """
        result = await session.execute(
            update(ImageCacheEntryDB)
            .where(
                ImageCacheEntryDB.filename == key,
                ImageCacheEntryDB.num_fail == expected_count,
            )
            .values(num_fail=ImageCacheEntryDB.num_fail + 1)
            .execution_options(synchronize_session=False)
        )
        await session.flush()
        return result.rowcount == 1

    async def touch_success_if_stale(
        self,
        session: AsyncSession,
        key: str,
        now: int,
        stale_window_seconds: int = 3600,
    ) -> bool:
        """Refresh ``log_time`` of a succeeded row older than the window."""
        result = await session.execute(
            update(ImageCacheEntryDB)
            .where(
                ImageCacheEntryDB.filename == key,
                ImageCacheEntryDB.num_fail == 0,
                ImageCacheEntryDB.log_time + stale_window_seconds < now,
            )
            .values(log_time=now)
            .execution_options(synchronize_session=False)
        )
        await session.flush()
        return (result.rowcount or 0) > 0

    async def delete_entry(self, session: AsyncSession, key: str) -> bool:
        """Delete the row for ``key``; returns whether a row was removed."""
        result = await session.execute(
            delete(ImageCacheEntryDB).where(ImageCacheEntryDB.filename == key)
        )
        await session.flush()
        return (result.rowcount or 0) > 0

    async def delete_entries(self, session: AsyncSession, keys: Iterable[str]) -> int:
        """Bulk-delete rows for ``keys``; returns the number removed."""
        key_list = list(keys)
        deleted = 0
        for start in range(0, len(key_list), _DELETE_CHUNK_SIZE):
            chunk = key_list[start : start + _DELETE_CHUNK_SIZE]
            result = await session.execute(
                delete(ImageCacheEntryDB).where(ImageCacheEntryDB.filename.in_(chunk))
            )
            deleted += result.rowcount or 0
        await session.flush()
        return deleted

    async def truncate_all(self, session: AsyncSession) -> int:
        """Delete every row of the index."""
        result = await session.execute(delete(ImageCacheEntryDB))
        await session.flush()
        logger.info("Truncated image cache index (%d rows)", result.rowcount or 0)
        return result.rowcount or 0

    async def select_older_than(
        self, session: AsyncSession, cutoff: int, *, batch_size: int = 500
    ) -> AsyncIterator[str]:
        """Yield keys whose ``log_time`` is before ``cutoff``.

        Keys are read lazily in keyset-paginated batches; every call starts
        a fresh scan.
        """
        last_key = ""
        while True:
            result = await session.execute(
                select(ImageCacheEntryDB.filename)
                .where(
                    ImageCacheEntryDB.log_time < cutoff,
                    ImageCacheEntryDB.filename > last_key,
                )
                .order_by(ImageCacheEntryDB.filename)
                .limit(batch_size)
            )
            batch: List[str] = list(result.scalars().all())
            if not batch:
                return
            for key in batch:
                yield key
            if len(batch) < batch_size:
                return
            last_key = batch[-1]

    async def count_by_state(
        self, session: AsyncSession, *, max_retry: int = 10
    ) -> CacheIndexStats:
        """Summarise the index by state."""
        result = await session.execute(
            select(
                func.count(),
                func.sum(case((ImageCacheEntryDB.num_fail == 0, 1), else_=0)),
                func.sum(
                    case(
                        (
                            and_(
                                ImageCacheEntryDB.num_fail > 0,
                                ImageCacheEntryDB.num_fail <= max_retry,
                            ),
                            1,
                        ),
                        else_=0,
                    )
                ),
                func.sum(case((ImageCacheEntryDB.num_fail > max_retry, 1), else_=0)),
                func.min(ImageCacheEntryDB.log_time),
                func.max(ImageCacheEntryDB.log_time),
            )
        )
        total, succeeded, failed, abandoned, oldest, newest = result.one()
        return CacheIndexStats(
            total=total or 0,
            succeeded=succeeded or 0,
            failed=failed or 0,
            abandoned=abandoned or 0,
            oldest_log_time=oldest,
            newest_log_time=newest,
        )
