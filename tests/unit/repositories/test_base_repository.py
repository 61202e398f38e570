"""
Tests for BaseSQLAlchemyRepository functionality.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.db.models import ModSetting as ModSettingDB
from imagecache.exceptions import ConfigurationError
from imagecache.repositories.base import BaseSQLAlchemyRepository


class MockRepository(BaseSQLAlchemyRepository[ModSettingDB]):
    """Mock repository for testing."""

    def __init__(self) -> None:
        super().__init__(ModSettingDB)


@pytest.fixture
def repository() -> MockRepository:
    """Create repository instance for testing."""
    return MockRepository()


def _session_for(dialect_name: str) -> MagicMock:
    session = MagicMock(spec=AsyncSession)
    session.get_bind.return_value.dialect.name = dialect_name
    return session


class TestDialectInsert:
    """Tests for the dialect-aware INSERT construct."""

    def test_postgresql(self, repository: MockRepository) -> None:
        stmt = repository._insert(_session_for("postgresql"))
        assert isinstance(stmt, postgresql.Insert)

    def test_sqlite(self, repository: MockRepository) -> None:
        stmt = repository._insert(_session_for("sqlite"))
        assert isinstance(stmt, sqlite.Insert)

    def test_unsupported_dialect(self, repository: MockRepository) -> None:
        with pytest.raises(ConfigurationError):
            repository._insert(_session_for("mysql"))


class TestCommonQueries:
    """Tests for get/exists/count against SQLite."""

    @pytest.mark.asyncio
    async def test_queries(self, repository: MockRepository, db_session: AsyncSession) -> None:
        db_session.add_all(
            [ModSettingDB(variable=f"k{i}", value=str(i)) for i in range(3)]
        )
        await db_session.commit()

        assert (await repository.get(db_session, "k1")).value == "1"
        assert await repository.exists(db_session, "k2") is True
        assert await repository.exists(db_session, "missing") is False
        assert await repository.count(db_session) == 3
