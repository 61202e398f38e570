"""
Repository layer for imagecache.

Provides data access for the cache index, persisted settings and the
scheduled task registry.
"""

from __future__ import annotations

from imagecache.repositories.base import BaseSQLAlchemyRepository
from imagecache.repositories.image_cache_repository import ImageCacheRepository
from imagecache.repositories.mod_settings_repository import ModSettingsRepository
from imagecache.repositories.scheduled_task_repository import ScheduledTaskRepository

__all__ = [
    "BaseSQLAlchemyRepository",
    "ImageCacheRepository",
    "ModSettingsRepository",
    "ScheduledTaskRepository",
]
