"""
Image cache orchestrator.

Decides, for one access of a source URL, whether to fetch, retry, skip or
touch, and records the outcome in the cache index. Coordination between
concurrent requests happens only through the index table: the first fetch
is guarded by an insert-if-absent and every retry by a compare-and-increment
on the failure count.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.models.cache_state import (
    CacheAccessResult,
    Failed,
    FetchResult,
    Succeeded,
    Unseen,
)
from imagecache.repositories.image_cache_repository import ImageCacheRepository
from imagecache.services.blob_store import BlobStore
from imagecache.services.cache_config import ImageCacheConfig
from imagecache.services.hasher import Hasher, load_or_create_salt
from imagecache.services.image_fetcher import ImageFetcher
from imagecache.services.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

PROXY_PATH = "/imagecache"


def build_proxy_url(site_url: str, source_url: str, key: str) -> str:
    """Public proxy URL serving ``source_url`` through the cache."""
    return f"{site_url.rstrip('/')}{PROXY_PATH}?image={quote_plus(source_url)}&hash={key}"


class ImageCacheService:
    """Cache orchestrator for remote images.

    Parameters
    ----------
    config : ImageCacheConfig
        Service configuration.
    hasher : Hasher
        Key derivation for the installation salt.
    repository : ImageCacheRepository | None
        Cache index repository.
    blob_store : BlobStore | None
        Blob store rooted at ``config.cache_dir``.
    fetcher : ImageFetcher | None
        Fetch/resize pipeline.
    retry_policy : RetryPolicy | None
        Retry decisions; built from ``config.max_retry`` if omitted.
    clock : Callable[[], float]
        Source of the current epoch time.
    """

    def __init__(
        self,
        config: ImageCacheConfig,
        hasher: Hasher,
        repository: Optional[ImageCacheRepository] = None,
        blob_store: Optional[BlobStore] = None,
        fetcher: Optional[ImageFetcher] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._hasher = hasher
        self._repository = repository or ImageCacheRepository()
        self._blob_store = blob_store or BlobStore(config.cache_dir)
        self._fetcher = fetcher or ImageFetcher(config, self._blob_store)
        self._retry_policy = retry_policy or RetryPolicy(config.max_retry)
        self._clock = clock

    @property
    def config(self) -> ImageCacheConfig:
        return self._config

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    @property
    def repository(self) -> ImageCacheRepository:
        return self._repository

    @property
    def blob_store(self) -> BlobStore:
        return self._blob_store

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def now(self) -> int:
        """Current time as integer epoch seconds."""
        return int(self._clock())

    def key_for(self, url: str) -> str:
        """Cache key for ``url``."""
        return self._hasher.key_for(url)

    def blob_path(self, key: str) -> Path:
        """Blob path for ``key``."""
        return self._blob_store.path_for(key)

    # ------------------------------------------------------------------
    # Access state machine
    # ------------------------------------------------------------------

    async def access(self, session: AsyncSession, url: str) -> CacheAccessResult:
        """Record one access of ``url``, fetching or retrying when needed.

        ==========================  ======================================
        Current state               Action
        ==========================  ======================================
        Unseen                      insert Failed(1), fetch
        Succeeded, blob present     touch ``log_time`` when stale
        Succeeded, blob missing     delete the row, then as Unseen
        Failed(n), due              compare-and-increment, fetch if won
        Failed(n), not due          nothing
        Failed(n), n > max_retry    nothing (placeholder stays)
        ==========================  ======================================

        Parameters
        ----------
        session : AsyncSession
            Database session; committed after every index write.
        url : str
            Source image URL.

        Returns
        -------
        CacheAccessResult
            Key, resulting state and the fetch outcome if one ran.
        """
        key = self.key_for(url)
        now = self.now()
        state = await self._repository.lookup(session, key)

        if isinstance(state, Succeeded):
            if self._blob_store.exists(key):
                if await self._repository.touch_success_if_stale(
                    session, key, now, self._config.touch_interval_seconds
                ):
                    await session.commit()
                    state = Succeeded(last_access=now)
                return CacheAccessResult(key=key, state=state)

            logger.info("Blob missing for cached image %s; fetching again", key)
            await self._repository.delete_entry(session, key)
            await session.commit()
            state = Unseen()

        if isinstance(state, Unseen):
            # Concurrent first fetches may both run; the last writer wins
            await self._repository.insert_failure_if_absent(session, key, now)
            await session.commit()
            return await self._fetch(
                session, key, url, on_failure=Failed(count=1, last_attempt=now)
            )

        if not self._retry_policy.is_due(state.count, state.last_attempt, now):
            return CacheAccessResult(key=key, state=state)

        won = await self._repository.increment_failure_if_matches(
            session, key, state.count
        )
        await session.commit()
        if not won:
            logger.debug("Lost retry race for %s at count %d", key, state.count)
            return CacheAccessResult(key=key, state=state)

        logger.info("Retrying image %s (attempt %d)", url, state.count + 1)
        return await self._fetch(
            session,
            key,
            url,
            on_failure=Failed(count=state.count + 1, last_attempt=state.last_attempt),
        )

    async def _fetch(
        self,
        session: AsyncSession,
        key: str,
        url: str,
        on_failure: Failed,
    ) -> CacheAccessResult:
        result: FetchResult = await self._fetcher.fetch_and_store(
            key,
            url,
            max_width=self._config.max_width,
            max_height=self._config.max_height,
        )
        if not result.success:
            if self._retry_policy.is_abandoned(on_failure.count):
                logger.warning("Giving up on image %s after %d failures", url, on_failure.count)
            return CacheAccessResult(
                key=key, state=on_failure, fetched=True, fetch_result=result
            )

        finished = self.now()
        await self._repository.upsert_success(session, key, finished)
        await session.commit()
        return CacheAccessResult(
            key=key,
            state=Succeeded(last_access=finished),
            fetched=True,
            fetch_result=result,
        )

    # ------------------------------------------------------------------
    # Convenience operations
    # ------------------------------------------------------------------

    async def proxify(self, session: AsyncSession, url: str) -> str:
        """Seed the cache for ``url`` and return its proxy URL."""
        result = await self.access(session, url)
        return build_proxy_url(self._config.site_url, url, result.key)

    async def remove_entry(self, session: AsyncSession, url: str) -> bool:
        """Forget ``url``: delete its blob and index row.

        Returns
        -------
        bool
            ``True`` if either the row or the blob existed.
        """
        key = self.key_for(url)
        removed_blob = self._blob_store.delete(key)
        removed_row = await self._repository.delete_entry(session, key)
        await session.commit()
        return removed_blob or removed_row

    async def clean_cache(self, session: AsyncSession) -> int:
        """Empty the index and delete every blob.

        Returns
        -------
        int
            Number of blob files removed.
        """
        await self._repository.truncate_all(session)
        await session.commit()
        removed = self._blob_store.delete_all()
        logger.info("Image cache cleaned (%d files removed)", removed)
        return removed


async def create_image_cache_service(
    session: AsyncSession,
    config: ImageCacheConfig,
    **kwargs: object,
) -> ImageCacheService:
    """Build an :class:`ImageCacheService` keyed by the persisted salt.

    The salt is generated and stored on first use.
    """
    salt = await load_or_create_salt(session)
    return ImageCacheService(config, Hasher(salt), **kwargs)  # type: ignore[arg-type]


__all__ = [
    "ImageCacheConfig",
    "ImageCacheService",
    "PROXY_PATH",
    "build_proxy_url",
    "create_image_cache_service",
]
