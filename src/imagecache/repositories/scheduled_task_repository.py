"""
Scheduled task repository.

Registration, deregistration and due-task queries for the
``scheduled_tasks`` table.
"""

from __future__ import annotations

from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.db.models import ScheduledTask as ScheduledTaskDB
from imagecache.models.enums import TimeUnit
from imagecache.repositories.base import BaseSQLAlchemyRepository


class ScheduledTaskRepository(BaseSQLAlchemyRepository[ScheduledTaskDB]):
    """Repository for recurring task registrations."""

    def __init__(self) -> None:
        super().__init__(ScheduledTaskDB)

    async def get_by_name(self, session: AsyncSession, task: str) -> ScheduledTaskDB | None:
        """Get a task registration by name."""
        result = await session.execute(
            select(ScheduledTaskDB).where(ScheduledTaskDB.task == task)
        )
        return result.scalar_one_or_none()

    async def register(
        self,
        session: AsyncSession,
        task: str,
        *,
        time_offset: int = 45,
        time_regularity: int = 1,
        time_unit: TimeUnit = TimeUnit.DAY,
        next_time: int = 0,
    ) -> bool:
        """Register ``task`` unless it already exists.

        Returns
        -------
        bool
            ``True`` if a new registration was created.
        """
        stmt = (
            self._insert(session)
            .values(
                task=task,
                next_time=next_time,
                time_offset=time_offset,
                time_regularity=time_regularity,
                time_unit=time_unit.value,
                disabled=False,
            )
            .on_conflict_do_nothing(index_elements=[ScheduledTaskDB.task])
        )
        result = await session.execute(stmt)
        await session.flush()
        return (result.rowcount or 0) > 0

    async def deregister(self, session: AsyncSession, task: str) -> bool:
        """Remove ``task``; returns whether a registration was removed."""
        result = await session.execute(
            delete(ScheduledTaskDB).where(ScheduledTaskDB.task == task)
        )
        await session.flush()
        return (result.rowcount or 0) > 0

    async def get_due(self, session: AsyncSession, now: int) -> List[ScheduledTaskDB]:
        """Enabled tasks whose ``next_time`` has passed."""
        result = await session.execute(
            select(ScheduledTaskDB)
            .where(ScheduledTaskDB.disabled.is_(False), ScheduledTaskDB.next_time <= now)
            .order_by(ScheduledTaskDB.next_time, ScheduledTaskDB.id_task)
        )
        return list(result.scalars().all())

    async def set_next_time(self, session: AsyncSession, task: str, next_time: int) -> None:
        """Reschedule ``task``."""
        await session.execute(
            update(ScheduledTaskDB)
            .where(ScheduledTaskDB.task == task)
            .values(next_time=next_time)
            .execution_options(synchronize_session=False)
        )
        await session.flush()
