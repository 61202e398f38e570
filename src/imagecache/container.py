"""
Dependency Injection Container for imagecache.

This module provides a centralized container for managing dependencies across
the application. It implements a lightweight dependency injection pattern that:

- Provides factory methods for creating repository instances (transient)
- Manages singleton service instances via cached properties
- Builds the salt-keyed cache orchestrator once per process
- Enables easy mock injection for testing

Usage
-----
Basic repository access:

    >>> from imagecache.container import container
    >>> cache_repo = container.create_image_cache_repository()

Singleton services:

    >>> sweeper = container.expiry_sweeper  # Cached
    >>> same = container.expiry_sweeper  # Same instance

Orchestrator (needs the persisted salt, hence async):

    >>> service = await container.get_image_cache_service(session)

Design Principles
-----------------
- Repository factories return new instances each call (transient)
- Service singletons are cached via @cached_property (lazy initialization)
- Container can be reset for testing isolation
"""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING, Optional

from imagecache.config.settings import Settings
from imagecache.config.settings import settings as default_settings
from imagecache.repositories import (
    ImageCacheRepository,
    ModSettingsRepository,
    ScheduledTaskRepository,
)
from imagecache.services.admin import ImageCacheAdminService
from imagecache.services.blob_store import BlobStore
from imagecache.services.cache_config import ImageCacheConfig
from imagecache.services.embedding import ImageEmbedder
from imagecache.services.expiry_sweeper import ExpirySweeper
from imagecache.services.image_cache import ImageCacheService, create_image_cache_service
from imagecache.services.image_fetcher import ImageFetcher
from imagecache.services.image_proxy import ImageProxy
from imagecache.services.scheduled_tasks import ScheduledTaskRunner, build_task_runner

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class Container:
    """
    Dependency injection container for imagecache.

    Parameters
    ----------
    settings : Settings | None
        Application settings; the global settings are used if omitted.

    Examples
    --------
    Creating repositories (transient - new instance each call):

        >>> container = Container()
        >>> repo1 = container.create_image_cache_repository()
        >>> repo2 = container.create_image_cache_repository()
        >>> repo1 is repo2
        False
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or default_settings
        self._image_cache_service: Optional[ImageCacheService] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    # -------------------------------------------------------------------------
    # Repository Factory Methods (Transient - new instance per call)
    # -------------------------------------------------------------------------

    def create_image_cache_repository(self) -> ImageCacheRepository:
        """Create a new ImageCacheRepository instance."""
        return ImageCacheRepository()

    def create_mod_settings_repository(self) -> ModSettingsRepository:
        """Create a new ModSettingsRepository instance."""
        return ModSettingsRepository()

    def create_scheduled_task_repository(self) -> ScheduledTaskRepository:
        """Create a new ScheduledTaskRepository instance."""
        return ScheduledTaskRepository()

    # -------------------------------------------------------------------------
    # Singleton Service Properties (Cached - same instance on repeated access)
    # -------------------------------------------------------------------------

    @cached_property
    def cache_config(self) -> ImageCacheConfig:
        """
        Get the image cache configuration built from settings.

        Returns
        -------
        ImageCacheConfig
            Explicit configuration passed to every cache service.
        """
        return ImageCacheConfig.from_settings(self._settings)

    @cached_property
    def blob_store(self) -> BlobStore:
        """Get the singleton BlobStore rooted at the cache directory."""
        return BlobStore(self.cache_config.cache_dir)

    @cached_property
    def image_fetcher(self) -> ImageFetcher:
        """
        Get the singleton ImageFetcher instance.

        A single instance is shared so its download semaphore limits
        concurrent fetches process-wide.
        """
        return ImageFetcher(self.cache_config, self.blob_store)

    @cached_property
    def expiry_sweeper(self) -> ExpirySweeper:
        """Get the singleton ExpirySweeper instance."""
        return ExpirySweeper(self.blob_store, self.create_image_cache_repository())

    @cached_property
    def admin_service(self) -> ImageCacheAdminService:
        """Get the singleton ImageCacheAdminService instance."""
        return ImageCacheAdminService(
            self.blob_store,
            settings_repository=self.create_mod_settings_repository(),
            task_repository=self.create_scheduled_task_repository(),
            cache_repository=self.create_image_cache_repository(),
        )

    @cached_property
    def task_runner(self) -> ScheduledTaskRunner:
        """Get the singleton ScheduledTaskRunner with built-in tasks registered."""
        return build_task_runner(self.expiry_sweeper, self.create_mod_settings_repository())

    # -------------------------------------------------------------------------
    # Salt-keyed services
    # -------------------------------------------------------------------------

    async def get_image_cache_service(self, session: "AsyncSession") -> ImageCacheService:
        """
        Get the orchestrator, loading (or creating) the salt on first use.

        Parameters
        ----------
        session : AsyncSession
            Session used to read the persisted salt.

        Returns
        -------
        ImageCacheService
            The process-wide orchestrator.
        """
        if self._image_cache_service is None:
            self._image_cache_service = await create_image_cache_service(
                session,
                self.cache_config,
                repository=self.create_image_cache_repository(),
                blob_store=self.blob_store,
                fetcher=self.image_fetcher,
            )
        return self._image_cache_service

    async def create_image_proxy(self, session: "AsyncSession") -> ImageProxy:
        """Create an ImageProxy bound to the orchestrator."""
        return ImageProxy(await self.get_image_cache_service(session))

    async def create_image_embedder(self, session: "AsyncSession") -> ImageEmbedder:
        """Create an ImageEmbedder with the currently persisted options."""
        service = await self.get_image_cache_service(session)
        options = await self.admin_service.load_options(session)
        return ImageEmbedder(service, options)

    # -------------------------------------------------------------------------
    # Testing Support
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """
        Reset the container by clearing all cached singleton instances.

        This method is primarily for testing purposes, allowing tests to
        inject mocks and then restore the container to a clean state.
        """
        properties_to_clear = [
            "cache_config",
            "blob_store",
            "image_fetcher",
            "expiry_sweeper",
            "admin_service",
            "task_runner",
        ]
        for prop in properties_to_clear:
            self.__dict__.pop(prop, None)
        self._image_cache_service = None


# Global container instance
# This is the single entry point for dependency access throughout the application
container = Container()
