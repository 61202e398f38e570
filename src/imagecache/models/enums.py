"""
Enums for imagecache models.

Defines enumeration types used across the application for consistent
type safety and validation.
"""

from __future__ import annotations

from enum import Enum


class CacheStateKind(str, Enum):
    """Discriminator for the per-key cache state."""

    UNSEEN = "unseen"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ImageFormat(str, Enum):
    """Encoding family of a cached blob, chosen from the source extension."""

    GIF = "GIF"
    PNG = "PNG"
    JPEG = "JPEG"

    @classmethod
    def from_extension(cls, extension: str) -> "ImageFormat":
        """Map a file extension (with or without dot) to its encoding family."""
        ext = extension.lower().lstrip(".")
        if ext == "gif":
            return cls.GIF
        if ext == "png":
            return cls.PNG
        return cls.JPEG


class TimeUnit(str, Enum):
    """Scheduled task regularity units."""

    MINUTE = "m"
    HOUR = "h"
    DAY = "d"
    WEEK = "w"

    @property
    def seconds(self) -> int:
        """Length of one unit in seconds."""
        return {"m": 60, "h": 3600, "d": 86400, "w": 604800}[self.value]
