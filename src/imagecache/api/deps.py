"""FastAPI dependencies for API endpoints."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.config.database import db_manager
from imagecache.container import container
from imagecache.services.image_proxy import ImageProxy


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for database session.

    Yields an async SQLAlchemy session that auto-commits on success
    and rolls back on exception.

    Yields
    ------
    AsyncSession
        An async SQLAlchemy session for database operations.
    """
    async for session in db_manager.get_session():
        yield session


async def get_image_proxy(db: AsyncSession = Depends(get_db)) -> ImageProxy:
    """
    Dependency for the image proxy.

    The orchestrator behind it is built once per process; the first call
    loads (or creates) the installation salt.
    """
    return await container.create_image_proxy(db)
