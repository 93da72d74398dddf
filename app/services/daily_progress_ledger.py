"""
Daily progress ledger: one row per (user, path, day)

The ledger is written on every task/subtask toggle so it always mirrors the
live day. The next day's reset reads yesterday's row to decide whether the
streak survives; once the date has rolled over that row is read-only.
"""

from typing import Iterable, Optional

import structlog

from app.core.clock import Clock, today_iso, yesterday_iso
from app.db.repository import GameRepository
from app.domain.models import DailyPathProgress, calculate_percentage, status_for_percentage

logger = structlog.get_logger(__name__)


class DailyProgressLedger:
    """Upserts and point lookups over daily path progress"""

    def __init__(self, repository: GameRepository, clock: Clock):
        self.repository = repository
        self.clock = clock

    async def upsert(
        self,
        user_id: str,
        path_id: str,
        date: str,
        tasks_total: int,
        tasks_completed: int,
        completed_task_ids: Iterable[str] = (),
        completed_subtask_ids: Iterable[str] = ()
    ) -> DailyPathProgress:
        """
        Create or replace the entry for (user, path, date)

        Percentage and status are recomputed on every call. Only today's
        entry may be written.

        Raises:
            ValueError: counts are negative, completed exceeds total, or the
                date is not today
        """
        if tasks_total < 0 or tasks_completed < 0:
            raise ValueError("Task counts must be non-negative")
        if tasks_completed > tasks_total:
            raise ValueError(
                f"Completed tasks ({tasks_completed}) exceed total ({tasks_total})"
            )
        if date != today_iso(self.clock):
            raise ValueError(f"Ledger entry for {date} is closed; only today may be written")

        percentage = calculate_percentage(tasks_total, tasks_completed)
        entry = DailyPathProgress(
            user_id=user_id,
            path_id=path_id,
            date=date,
            tasks_total=tasks_total,
            tasks_completed=tasks_completed,
            percentage=percentage,
            status=status_for_percentage(percentage),
            completed_task_ids=list(completed_task_ids),
            completed_subtask_ids=list(completed_subtask_ids),
        )

        stored = await self.repository.upsert_daily_progress(entry)

        logger.debug("Daily path progress upserted",
                     user_id=user_id,
                     path_id=path_id,
                     date=date,
                     completed=tasks_completed,
                     total=tasks_total,
                     percentage=percentage,
                     status=entry.status.value)

        return stored or entry

    async def upsert_today(self, user_id: str, path_id: str, tasks_total: int,
                           tasks_completed: int, completed_task_ids: Iterable[str] = (),
                           completed_subtask_ids: Iterable[str] = ()) -> DailyPathProgress:
        return await self.upsert(
            user_id, path_id, today_iso(self.clock), tasks_total, tasks_completed,
            completed_task_ids, completed_subtask_ids
        )

    async def get_entry(self, user_id: str, path_id: str, date: str) -> Optional[DailyPathProgress]:
        """None when the path was not tracked that day (not the same as 0%)"""
        return await self.repository.get_daily_progress(user_id, path_id, date)

    async def get_today_entry(self, user_id: str, path_id: str) -> Optional[DailyPathProgress]:
        return await self.get_entry(user_id, path_id, today_iso(self.clock))

    async def get_yesterday_entry(self, user_id: str, path_id: str) -> Optional[DailyPathProgress]:
        return await self.get_entry(user_id, path_id, yesterday_iso(self.clock))
