"""
Pydantic models for imagecache.
"""

from __future__ import annotations

from imagecache.models.cache_state import (
    CacheAccessResult,
    CacheIndexStats,
    CacheState,
    Failed,
    FetchResult,
    Succeeded,
    Unseen,
    state_from_row,
)
from imagecache.models.enums import CacheStateKind, ImageFormat, TimeUnit
from imagecache.models.options import ImageCacheOptions

__all__ = [
    "CacheAccessResult",
    "CacheIndexStats",
    "CacheState",
    "CacheStateKind",
    "Failed",
    "FetchResult",
    "ImageCacheOptions",
    "ImageFormat",
    "Succeeded",
    "TimeUnit",
    "Unseen",
    "state_from_row",
]
