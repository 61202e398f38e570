"""
Persisted settings repository.

Key/value access to the ``settings`` table, including the insert-if-absent
write used to generate the secret salt exactly once.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.db.models import ModSetting as ModSettingDB
from imagecache.repositories.base import BaseSQLAlchemyRepository


class ModSettingsRepository(BaseSQLAlchemyRepository[ModSettingDB]):
    """Repository for persisted configuration values."""

    def __init__(self) -> None:
        super().__init__(ModSettingDB)

    async def get_value(self, session: AsyncSession, variable: str) -> Optional[str]:
        """Return the stored value of ``variable`` or ``None``."""
        result = await session.execute(
            select(ModSettingDB.value).where(ModSettingDB.variable == variable)
        )
        return result.scalar_one_or_none()

    async def get_values(
        self, session: AsyncSession, variables: Iterable[str]
    ) -> Dict[str, str]:
        """Return stored values for the requested variables that exist."""
        names = list(variables)
        if not names:
            return {}
        result = await session.execute(
            select(ModSettingDB.variable, ModSettingDB.value).where(
                ModSettingDB.variable.in_(names)
            )
        )
        return {row[0]: row[1] for row in result.all()}

    async def set_values(self, session: AsyncSession, values: Mapping[str, str]) -> None:
        """Insert or replace each ``variable -> value`` pair."""
        for variable, value in values.items():
            stmt = self._insert(session).values(variable=variable, value=value)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ModSettingDB.variable], set_={"value": value}
            )
            await session.execute(stmt)
        await session.flush()

    async def set_value_if_absent(
        self, session: AsyncSession, variable: str, value: str
    ) -> bool:
        """Store ``value`` only when ``variable`` has no row yet.

        Returns
        -------
        bool
            ``True`` if this call wrote the value.
        """
        stmt = (
            self._insert(session)
            .values(variable=variable, value=value)
            .on_conflict_do_nothing(index_elements=[ModSettingDB.variable])
        )
        result = await session.execute(stmt)
        await session.flush()
        return (result.rowcount or 0) > 0
