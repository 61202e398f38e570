"""
Database models for imagecache.

Three tables: the image cache index, the persisted key/value settings and
the scheduled task registry.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ImageCacheEntry(Base):
    """One row per distinct source image ever requested."""

    __tablename__ = "image_cache"

    # HMAC-MD5 hex digest of the source URL
    filename: Mapped[str] = mapped_column(String(32), primary_key=True)

    # Epoch seconds: last success/access, or first failure for failed rows
    log_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # 0 = succeeded, n > 0 = failed n consecutive times
    num_fail: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_image_cache_log_time", "log_time"),)

    def __repr__(self) -> str:
        return (
            f"<ImageCacheEntry(filename={self.filename!r}, "
            f"log_time={self.log_time}, num_fail={self.num_fail})>"
        )


class ModSetting(Base):
    """Persisted configuration value (``imagecache_sauce``, ``image_cache_*``)."""

    __tablename__ = "settings"

    variable: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")


class ScheduledTask(Base):
    """Recurring task registration, e.g. ``remove_old_image_cache``."""

    __tablename__ = "scheduled_tasks"

    id_task: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    next_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_offset: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_regularity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    time_unit: Mapped[str] = mapped_column(String(1), nullable=False, default="d")
    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
