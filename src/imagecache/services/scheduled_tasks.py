"""
Scheduled task runner.

Runs registered recurring tasks whose ``next_time`` has passed and
reschedules them. The runner itself is triggered externally (cron calling
``imagecache tasks run``).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.models.enums import TimeUnit
from imagecache.models.options import KEEP_DAYS_KEY, ImageCacheOptions
from imagecache.repositories.mod_settings_repository import ModSettingsRepository
from imagecache.repositories.scheduled_task_repository import ScheduledTaskRepository
from imagecache.services.admin import REMOVE_OLD_TASK
from imagecache.services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)

TaskHandler = Callable[[AsyncSession], Awaitable[object]]


def next_run_time(now: int, time_offset: int, time_regularity: int, time_unit: str) -> int:
    """First run time after ``now`` on the task's grid.

    Runs are aligned to multiples of the period shifted by ``time_offset``,
    e.g. a daily task with offset 45 runs at 00:00:45 UTC.
    """
    period = max(time_regularity, 1) * TimeUnit(time_unit).seconds
    return ((now - time_offset) // period + 1) * period + time_offset


class DueTask(BaseModel):
    """Detached snapshot of a due task row."""

    name: str
    time_offset: int
    time_regularity: int
    time_unit: str

    def next_time(self, now: int) -> int:
        return next_run_time(now, self.time_offset, self.time_regularity, self.time_unit)


class TaskRunSummary(BaseModel):
    """Which due tasks ran, failed or had no handler."""

    ran: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)


class ScheduledTaskRunner:
    """Executes due tasks from a name -> handler registry.

    Parameters
    ----------
    handlers : Mapping[str, TaskHandler]
        Coroutine functions keyed by task name.
    repository : ScheduledTaskRepository | None
        Scheduled task repository.
    clock : Callable[[], float]
        Source of the current epoch time.
    """

    def __init__(
        self,
        handlers: Optional[Mapping[str, TaskHandler]] = None,
        repository: Optional[ScheduledTaskRepository] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._handlers: Dict[str, TaskHandler] = dict(handlers or {})
        self._repository = repository or ScheduledTaskRepository()
        self._clock = clock

    def register_handler(self, task: str, handler: TaskHandler) -> None:
        """Add or replace the handler for ``task``."""
        self._handlers[task] = handler

    @property
    def task_names(self) -> List[str]:
        return sorted(self._handlers)

    async def run_due(self, session: AsyncSession) -> TaskRunSummary:
        """Run every enabled task that is due and reschedule it.

        Task errors are logged and recorded in the summary; they never
        propagate.
        """
        now = int(self._clock())
        summary = TaskRunSummary()

        # Rows expire on rollback, so read them once before any handler runs
        due = [
            DueTask(
                name=row.task,
                time_offset=row.time_offset,
                time_regularity=row.time_regularity,
                time_unit=row.time_unit,
            )
            for row in await self._repository.get_due(session, now)
        ]

        for task in due:
            name = task.name
            handler = self._handlers.get(name)
            if handler is None:
                logger.debug("No handler for scheduled task %s", name)
                summary.skipped.append(name)
                continue

            try:
                await handler(session)
            except Exception:
                logger.exception("Scheduled task %s failed", name)
                await session.rollback()
                summary.failed.append(name)
            else:
                logger.info("Scheduled task %s completed", name)
                summary.ran.append(name)

            await self._repository.set_next_time(session, name, task.next_time(now))
            await session.commit()

        return summary


def build_task_runner(
    sweeper: ExpirySweeper,
    settings_repository: Optional[ModSettingsRepository] = None,
    clock: Callable[[], float] = time.time,
) -> ScheduledTaskRunner:
    """Runner with the image cache's own tasks registered."""
    settings_repo = settings_repository or ModSettingsRepository()

    async def remove_old_image_cache(session: AsyncSession) -> object:
        values = await settings_repo.get_values(session, [KEEP_DAYS_KEY])
        options = ImageCacheOptions.from_settings(values)
        return await sweeper.sweep(session, options.keep_days)

    return ScheduledTaskRunner({REMOVE_OLD_TASK: remove_old_image_cache}, clock=clock)
