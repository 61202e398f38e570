"""
Base repository implementation.

Provides common query helpers and dialect-aware ``INSERT ... ON CONFLICT``
support shared by all repositories.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

from imagecache.exceptions import ConfigurationError

# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=DeclarativeBase)


class BaseSQLAlchemyRepository(Generic[ModelType]):
    """
    Base SQLAlchemy repository implementation.

    Provides common SQLAlchemy-based operations that can be inherited by
    specific repository implementations.
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def get(self, session: AsyncSession, id: Any) -> Optional[ModelType]:
        """Get entity by primary key."""
        return await session.get(self.model, id)

    async def exists(self, session: AsyncSession, id: Any) -> bool:
        """Check if entity exists by primary key."""
        return await self.get(session, id) is not None

    async def count(self, session: AsyncSession) -> int:
        """Count total number of entities."""
        result = await session.execute(select(func.count()).select_from(self.model))
        return result.scalar() or 0

    def _insert(self, session: AsyncSession) -> Any:
        """Return a dialect-specific INSERT supporting ``on_conflict_*``.

        Both the PostgreSQL and SQLite constructs expose
        ``on_conflict_do_nothing`` and ``on_conflict_do_update``.

        Raises
        ------
        ConfigurationError
            If the bound database dialect has no ``ON CONFLICT`` support.
        """
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(self.model)
        if dialect == "sqlite":
            return sqlite_insert(self.model)
        raise ConfigurationError(f"Unsupported database dialect: {dialect}")
