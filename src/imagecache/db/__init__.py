"""
Database package for imagecache.

Contains SQLAlchemy models and Alembic migrations.
"""

from __future__ import annotations

from imagecache.db.models import Base, ImageCacheEntry, ModSetting, ScheduledTask

__all__ = ["Base", "ImageCacheEntry", "ModSetting", "ScheduledTask"]
