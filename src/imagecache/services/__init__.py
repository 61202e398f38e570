"""
Services module for imagecache.

Contains the cache orchestrator, fetch pipeline, HTTP serving proxy,
expiry sweeper, embed-time helpers and administrative operations.
"""

from __future__ import annotations

from imagecache.services.admin import ImageCacheAdminService
from imagecache.services.blob_store import BlobStore
from imagecache.services.cache_config import ImageCacheConfig
from imagecache.services.embedding import ImageEmbedder, RenderContext, add_protocol, needs_caching
from imagecache.services.expiry_sweeper import ExpirySweeper, SweepResult
from imagecache.services.hasher import Hasher, compute_key
from imagecache.services.image_cache import ImageCacheService
from imagecache.services.image_fetcher import ImageFetcher
from imagecache.services.image_proxy import ImageProxy
from imagecache.services.retry_policy import RetryPolicy
from imagecache.services.scheduled_tasks import ScheduledTaskRunner

__all__: list[str] = [
    "BlobStore",
    "ExpirySweeper",
    "Hasher",
    "ImageCacheAdminService",
    "ImageCacheConfig",
    "ImageCacheService",
    "ImageEmbedder",
    "ImageFetcher",
    "ImageProxy",
    "RenderContext",
    "RetryPolicy",
    "ScheduledTaskRunner",
    "SweepResult",
    "add_protocol",
    "compute_key",
    "needs_caching",
]
