"""
Administrative operations for the image cache.

Loading and saving the persisted options (with the matching scheduled task
registration) and emptying the cache on demand.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.models.cache_state import CacheIndexStats
from imagecache.models.enums import TimeUnit
from imagecache.models.options import (
    CACHE_ALL_KEY,
    ENABLED_KEY,
    KEEP_DAYS_KEY,
    NOLINK_KEY,
    ImageCacheOptions,
)
from imagecache.repositories.image_cache_repository import ImageCacheRepository
from imagecache.repositories.mod_settings_repository import ModSettingsRepository
from imagecache.repositories.scheduled_task_repository import ScheduledTaskRepository
from imagecache.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

REMOVE_OLD_TASK = "remove_old_image_cache"
REMOVE_OLD_TASK_OFFSET = 45

_OPTION_KEYS = (ENABLED_KEY, CACHE_ALL_KEY, NOLINK_KEY, KEEP_DAYS_KEY)


class ImageCacheAdminService:
    """Settings and maintenance actions for administrators.

    Parameters
    ----------
    blob_store : BlobStore
        Store holding the cache blobs.
    settings_repository : ModSettingsRepository | None
        Persisted settings repository.
    task_repository : ScheduledTaskRepository | None
        Scheduled task repository.
    cache_repository : ImageCacheRepository | None
        Cache index repository.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        settings_repository: Optional[ModSettingsRepository] = None,
        task_repository: Optional[ScheduledTaskRepository] = None,
        cache_repository: Optional[ImageCacheRepository] = None,
    ) -> None:
        self._blob_store = blob_store
        self._settings_repository = settings_repository or ModSettingsRepository()
        self._task_repository = task_repository or ScheduledTaskRepository()
        self._cache_repository = cache_repository or ImageCacheRepository()

    async def load_options(self, session: AsyncSession) -> ImageCacheOptions:
        """Read the persisted options (defaults for missing keys)."""
        values = await self._settings_repository.get_values(session, _OPTION_KEYS)
        return ImageCacheOptions.from_settings(values)

    async def save_options(
        self, session: AsyncSession, options: ImageCacheOptions
    ) -> ImageCacheOptions:
        """Persist ``options`` and (de)register the expiry task to match.

        Enabling the cache registers ``remove_old_image_cache`` to run daily;
        disabling it removes the registration.
        """
        if options.enabled:
            if await self._task_repository.register(
                session,
                REMOVE_OLD_TASK,
                time_offset=REMOVE_OLD_TASK_OFFSET,
                time_regularity=1,
                time_unit=TimeUnit.DAY,
            ):
                logger.info("Registered scheduled task %s", REMOVE_OLD_TASK)
        elif await self._task_repository.deregister(session, REMOVE_OLD_TASK):
            logger.info("Removed scheduled task %s", REMOVE_OLD_TASK)

        await self._settings_repository.set_values(session, options.to_settings())
        await session.commit()
        return options

    async def clean_cache(self, session: AsyncSession) -> int:
        """Empty the cache index and delete every blob.

        Returns
        -------
        int
            Number of files removed.
        """
        rows = await self._cache_repository.truncate_all(session)
        await session.commit()
        removed = self._blob_store.delete_all()
        logger.info("Emptied image cache: %d rows, %d files", rows, removed)
        return removed

    async def stats(self, session: AsyncSession, max_retry: int) -> CacheIndexStats:
        """Index counts per state."""
        return await self._cache_repository.count_by_state(session, max_retry=max_retry)
