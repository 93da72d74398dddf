"""
Path progress service: checklist toggles, the intra-day streak rule and level-ups

A path's streak is incremented the first time its ledger entry reaches 100%
on a given day, and never again that day no matter how the checklist is
toggled afterwards. Rewards granted on that tick are never reverted.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from app.core.clock import Clock, today_iso
from app.core.errors import PathNotFoundError
from app.db.repository import GameRepository, path_streak_columns
from app.domain.models import (
    DailyPathProgress, IncrementResult, PathInstance, ProgressStatus
)
from app.services.daily_progress_ledger import DailyProgressLedger
from app.services.progression_service import (
    AggregatedRewards, LevelUpResult, ProgressionService, ProgressionSummary
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TaskProgressResult:
    path_id: str
    status: ProgressStatus
    percentage: int
    previous_percentage: int
    streak: int
    streak_incremented: bool
    entry: DailyPathProgress
    increment: Optional[IncrementResult] = None
    rewards: Optional[AggregatedRewards] = None
    persisted: bool = True


class PathProgressService:
    """Per-path writes: ledger on every toggle, first-100% streak rule, prestige"""

    def __init__(
        self,
        repository: GameRepository,
        clock: Clock,
        ledger: DailyProgressLedger,
        progression: ProgressionService
    ):
        self.repository = repository
        self.clock = clock
        self.ledger = ledger
        self.progression = progression

    async def _load_path(self, user_id: str, path_id: str) -> PathInstance:
        path = await self.repository.get_path(path_id)
        if path is None or path.user_id != user_id:
            raise PathNotFoundError(path_id)
        return path

    async def record_progress(
        self,
        user_id: str,
        path_id: str,
        tasks_total: int,
        tasks_completed: int,
        completed_task_ids: Iterable[str] = (),
        completed_subtask_ids: Iterable[str] = ()
    ) -> TaskProgressResult:
        """
        Write today's ledger entry and increment the streak on the first
        transition to 100% today
        """
        path = await self._load_path(user_id, path_id)
        today = today_iso(self.clock)

        previous = await self.ledger.get_today_entry(user_id, path_id)
        previous_percentage = previous.percentage if previous else 0

        entry = await self.ledger.upsert(
            user_id, path_id, today, tasks_total, tasks_completed,
            completed_task_ids, completed_subtask_ids
        )

        first_completion = (
            entry.status == ProgressStatus.COMPLETED
            and previous_percentage < 100
            and path.last_completed_date != today
        )

        if not first_completion:
            if entry.status == ProgressStatus.COMPLETED and path.last_completed_date == today:
                logger.debug("Path already completed today - streak unchanged",
                             path_id=path_id, streak=path.current_streak)
            return TaskProgressResult(
                path_id=path_id,
                status=entry.status,
                percentage=entry.percentage,
                previous_percentage=previous_percentage,
                streak=path.current_streak,
                streak_incremented=False,
                entry=entry,
            )

        return await self._complete_day(user_id, path, entry, previous_percentage, today)

    async def _complete_day(
        self,
        user_id: str,
        path: PathInstance,
        entry: DailyPathProgress,
        previous_percentage: int,
        today: str
    ) -> TaskProgressResult:
        progression = self.progression.for_archetype(path.archetype)
        completion = progression.process_daily_completion(path.to_streak_state(), True)
        increment = completion.streak_result
        updated = path.with_streak_state(increment.new_state)

        updates = path_streak_columns(updated)
        updates["last_completed_date"] = today
        persisted = await self.repository.update_path(path.id, updates)

        rewards = progression.aggregate_rewards(increment.rewards, increment.sub_rewards)
        if rewards.coins or rewards.stars or increment.will_gain > 0:
            await self.repository.add_profile_rewards(
                user_id, rewards.coins, rewards.stars, increment.will_gain
            )
            logger.info("Milestone rewards awarded",
                        user_id=user_id,
                        path_id=path.id,
                        coins=rewards.coins,
                        stars=rewards.stars,
                        will=str(increment.will_gain),
                        ticket=rewards.ticket)

        logger.info("Path completed - streak incremented",
                    user_id=user_id,
                    path_id=path.id,
                    old_streak=path.current_streak,
                    new_streak=updated.current_streak,
                    persisted=persisted)

        return TaskProgressResult(
            path_id=path.id,
            status=entry.status,
            percentage=entry.percentage,
            previous_percentage=previous_percentage,
            streak=updated.current_streak,
            streak_incremented=True,
            entry=entry,
            increment=increment,
            rewards=rewards,
            persisted=persisted,
        )

    async def toggle_task(
        self,
        user_id: str,
        path_id: str,
        task_id: str,
        task_ids: Optional[Sequence[str]] = None,
        subtasks_by_task: Optional[Dict[str, List[str]]] = None
    ) -> TaskProgressResult:
        """
        Flip one task in today's checklist

        Checking a task checks all its subtasks; unchecking clears them.
        """
        path = await self._load_path(user_id, path_id)
        task_ids = list(task_ids or path.task_ids)
        if task_id not in task_ids:
            raise ValueError(f"Task not found: {task_id}")

        subtasks = (subtasks_by_task or {}).get(task_id, [])
        current = await self.ledger.get_today_entry(user_id, path_id)
        completed = list(current.completed_task_ids) if current else []
        completed_subtasks = set(current.completed_subtask_ids) if current else set()

        if task_id in completed:
            completed.remove(task_id)
            completed_subtasks.difference_update(subtasks)
            logger.info("Task unchecked", path_id=path_id, task_id=task_id)
        else:
            completed.append(task_id)
            completed_subtasks.update(subtasks)
            logger.info("Task checked", path_id=path_id, task_id=task_id)

        completed = [t for t in completed if t in task_ids]
        return await self.record_progress(
            user_id, path_id, len(task_ids), len(completed),
            completed, sorted(completed_subtasks)
        )

    async def toggle_subtask(
        self,
        user_id: str,
        path_id: str,
        task_id: str,
        subtask_id: str,
        task_ids: Optional[Sequence[str]] = None,
        subtasks_by_task: Optional[Dict[str, List[str]]] = None
    ) -> TaskProgressResult:
        """
        Flip one subtask; the parent task is checked automatically once all
        of its subtasks are checked
        """
        path = await self._load_path(user_id, path_id)
        task_ids = list(task_ids or path.task_ids)
        subtasks = (subtasks_by_task or {}).get(task_id)
        if task_id not in task_ids or not subtasks or subtask_id not in subtasks:
            raise ValueError(f"Task not found or has no such subtask: {task_id}/{subtask_id}")

        current = await self.ledger.get_today_entry(user_id, path_id)
        completed = list(current.completed_task_ids) if current else []
        completed_subtasks = set(current.completed_subtask_ids) if current else set()

        if subtask_id in completed_subtasks:
            completed_subtasks.discard(subtask_id)
        else:
            completed_subtasks.add(subtask_id)
            if all(s in completed_subtasks for s in subtasks) and task_id not in completed:
                completed.append(task_id)
                logger.info("All subtasks checked - parent auto-checked",
                            path_id=path_id, task_id=task_id)

        completed = [t for t in completed if t in task_ids]
        return await self.record_progress(
            user_id, path_id, len(task_ids), len(completed),
            completed, sorted(completed_subtasks)
        )

    async def level_up(self, user_id: str, path_id: str) -> LevelUpResult:
        """Prestige a path whose streak has reached its milestone"""
        path = await self._load_path(user_id, path_id)
        progression = self.progression.for_archetype(path.archetype)
        result = progression.process_level_up(path.to_streak_state(), self.clock.now())

        if not result.success:
            return result

        updated = path.with_streak_state(result.new_state)
        updates = path_streak_columns(updated)
        updates["current_xp"] = 0
        await self.repository.update_path(path.id, updates)

        logger.info("Path leveled up",
                    user_id=user_id,
                    path_id=path.id,
                    previous_level=result.previous_level,
                    new_level=result.new_level)
        return result

    async def get_overview(self, user_id: str, path_id: str) -> Tuple[PathInstance, ProgressionSummary]:
        path = await self._load_path(user_id, path_id)
        progression = self.progression.for_archetype(path.archetype)
        summary = progression.get_progression_summary(path.to_progression_state())
        if summary.violations:
            logger.warning("Path progression state invalid",
                           path_id=path_id, violations=summary.violations)
        return path, summary
