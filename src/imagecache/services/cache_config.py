"""
Explicit configuration for the image cache services.

Built once from :class:`~imagecache.config.settings.Settings` and passed to
service constructors instead of reading globals.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from imagecache.config.settings import Settings


class ImageCacheConfig(BaseModel):
    """Configuration for the image cache proxy.

    Attributes
    ----------
    cache_dir : Path
        Directory holding ``img_cache_*`` blobs.
    site_url : str
        Public base URL of the site, without trailing slash.
    max_width : int
        Maximum width of a cached image.
    max_height : int
        Maximum height of a cached image.
    max_retry : int
        Failure count above which fetching is abandoned.
    fetch_timeout : float
        HTTP timeout in seconds for remote downloads.
    max_download_bytes : int
        Largest remote body accepted.
    placeholder_path : Path | None
        Image copied into place when a fetch fails; a built-in PNG is used
        when unset or unreadable.
    touch_interval_seconds : int
        Minimum age before a hit refreshes ``log_time``.
    fetch_on_demand : bool
        Whether the proxy endpoint runs the orchestrator before serving.
    client_cache_seconds : int
        ``max-age`` sent with cache hits.
    stream_threshold_bytes : int
        Files larger than this are streamed in chunks.
    stream_chunk_size : int
        Chunk size for streamed responses.
    max_concurrent_fetches : int
        Maximum concurrent remote downloads per process (semaphore limit).
    """

    cache_dir: Path
    site_url: str
    max_width: int = Field(default=1024, gt=0)
    max_height: int = Field(default=768, gt=0)
    max_retry: int = Field(default=10, ge=0)
    fetch_timeout: float = 300.0
    max_download_bytes: int = 20 * 1024 * 1024
    placeholder_path: Optional[Path] = None
    touch_interval_seconds: int = 3600
    fetch_on_demand: bool = True
    client_cache_seconds: int = 525600 * 60
    stream_threshold_bytes: int = 4 * 1024 * 1024
    stream_chunk_size: int = 8192
    max_concurrent_fetches: int = Field(default=5, gt=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageCacheConfig":
        """Build the service configuration from application settings."""
        return cls(
            cache_dir=settings.cache_dir,
            site_url=settings.site_url,
            max_width=settings.max_image_width,
            max_height=settings.max_image_height,
            max_retry=settings.max_retry,
            fetch_timeout=settings.fetch_timeout,
            max_download_bytes=settings.max_download_bytes,
            placeholder_path=settings.placeholder_path,
            touch_interval_seconds=settings.touch_interval_seconds,
            fetch_on_demand=settings.fetch_on_demand,
            client_cache_seconds=settings.client_cache_seconds,
            stream_threshold_bytes=settings.stream_threshold_bytes,
            stream_chunk_size=settings.stream_chunk_size,
            max_concurrent_fetches=settings.max_concurrent_fetches,
        )
