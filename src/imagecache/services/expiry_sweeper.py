"""
Expiry sweeper for the image cache.

Removes entries whose ``log_time`` is older than the retention window,
blob first, then the index rows in one bulk delete.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.repositories.image_cache_repository import ImageCacheRepository
from imagecache.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class SweepResult(BaseModel):
    """Outcome of one sweep.

    Attributes
    ----------
    removed : int
        Number of index rows deleted.
    files_removed : int
        Number of blob files deleted.
    cutoff : int | None
        Epoch cutoff used; ``None`` when retention is unlimited.
    """

    removed: int = 0
    files_removed: int = 0
    cutoff: Optional[int] = None


class ExpirySweeper:
    """Deletes cache entries that have not been used for a while.

    Parameters
    ----------
    blob_store : BlobStore
        Store holding the blobs.
    repository : ImageCacheRepository | None
        Cache index repository.
    clock : Callable[[], float]
        Source of the current epoch time.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        repository: Optional[ImageCacheRepository] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._blob_store = blob_store
        self._repository = repository or ImageCacheRepository()
        self._clock = clock

    async def sweep(self, session: AsyncSession, retention_days: int) -> SweepResult:
        """Remove entries older than ``retention_days`` days.

        A retention of ``0`` keeps everything. Missing blobs are ignored, so
        running the sweep twice in a row removes nothing the second time.

        Parameters
        ----------
        session : AsyncSession
            Database session; committed after the bulk delete.
        retention_days : int
            Days to keep an entry after its last use.

        Returns
        -------
        SweepResult
            Counts of removed rows and files, and the cutoff used.
        """
        if retention_days <= 0:
            logger.debug("Image cache retention is unlimited; nothing to sweep")
            return SweepResult()

        cutoff = int(self._clock()) - retention_days * SECONDS_PER_DAY
        keys = [key async for key in self._repository.select_older_than(session, cutoff)]
        if not keys:
            return SweepResult(cutoff=cutoff)

        files_removed = sum(1 for key in keys if self._blob_store.delete(key))
        removed = await self._repository.delete_entries(session, keys)
        await session.commit()

        logger.info(
            "Swept %d expired image cache entries (%d files, cutoff %d)",
            removed,
            files_removed,
            cutoff,
        )
        return SweepResult(removed=removed, files_removed=files_removed, cutoff=cutoff)
