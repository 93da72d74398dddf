"""
ChronosManager - the day-change reset engine

Detects that a user's calendar day has rolled over and reconciles their
state: yesterday's ledger decides which path streaks survive, a daily
record snapshots the day, the new day starts with empty checklists, quests are
migrated forward and the last-reset watermark is advanced.

The run is best-effort. Per-path, per-quest and snapshot failures are
collected into the result and never abort the reset; only a missing
profile (or an unreadable one) aborts, and it does so before any write.
"""

from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import uuid4

import structlog

from app.core.clock import Clock, today_iso, yesterday_iso
from app.db.repository import GameRepository
from app.domain.models import (
    ChronosResetResult, DailyPathProgress, DailyRecord, PathDailyStat,
    PathInstance, Quest, QuestStatus, ResetPhase, UserProfile
)
from app.services.daily_progress_ledger import DailyProgressLedger

logger = structlog.get_logger(__name__)


def evaluate_streak(
    path: PathInstance,
    yesterday_entry: Optional[DailyPathProgress]
) -> Tuple[int, bool]:
    """
    Decide a path's streak from yesterday's ledger entry

    No entry (path not tracked yesterday) or anything below 100% breaks the
    streak. A complete day keeps the streak as is: the increment already
    happened when the day was completed, so it is never applied twice.

    Returns:
        (new_streak, was_reset)
    """
    if yesterday_entry is None:
        logger.info("No yesterday progress found - resetting streak",
                    path_id=path.id, path_name=path.name,
                    current_streak=path.current_streak)
        return 0, True

    if yesterday_entry.percentage < 100:
        logger.info("Yesterday incomplete - resetting streak",
                    path_id=path.id, path_name=path.name,
                    yesterday_percentage=yesterday_entry.percentage,
                    current_streak=path.current_streak)
        return 0, True

    logger.info("Yesterday complete - maintaining streak",
                path_id=path.id, path_name=path.name,
                current_streak=path.current_streak)
    return path.current_streak, False


class ChronosManager:
    """Per-user day-change detector and reconciliation orchestrator"""

    def __init__(
        self,
        repository: GameRepository,
        clock: Clock,
        dawn_store,
        ledger: Optional[DailyProgressLedger] = None,
        record_retention: int = 30
    ):
        self.repository = repository
        self.clock = clock
        self.dawn_store = dawn_store
        self.ledger = ledger or DailyProgressLedger(repository, clock)
        self.record_retention = record_retention

        # (user_id, day) pairs whose automatic check already fired
        self._has_run: Set[Tuple[str, str]] = set()
        self._phases: Dict[str, ResetPhase] = {}

    # ==================== DETECTION ====================

    def get_phase(self, user_id: str) -> ResetPhase:
        return self._phases.get(user_id, ResetPhase.IDLE)

    def needs_reset(self, profile: UserProfile) -> bool:
        """A stored watermark older than today means the day has changed"""
        if not profile.last_reset_date:
            return False
        return profile.last_reset_date != today_iso(self.clock)

    async def check_and_reset(self, user_id: str) -> ChronosResetResult:
        """
        Automatic day-change check

        Fires at most once per user and day for the lifetime of this
        manager, even if called repeatedly before the watermark update lands.
        A missing watermark is initialised without running a reset.
        """
        today = today_iso(self.clock)
        latch_key = (user_id, today)
        if latch_key in self._has_run:
            logger.debug("Chronos check already ran", user_id=user_id, today=today)
            return ChronosResetResult(success=True, skipped=True)
        self._has_run.add(latch_key)

        try:
            profile = await self.repository.get_profile(user_id)
        except Exception as e:
            self._has_run.discard(latch_key)
            logger.error("Failed to load profile for chronos check", user_id=user_id, error=str(e))
            return ChronosResetResult(success=False, errors=[f"Fatal error: {e}"])

        if profile is None:
            self._has_run.discard(latch_key)
            logger.warning("Cannot check reset: no user profile", user_id=user_id)
            return ChronosResetResult(success=False, errors=[f"No user profile for {user_id}"])

        if not profile.last_reset_date:
            return await self._initialize_watermark(profile, today)

        if not self.needs_reset(profile):
            return ChronosResetResult(success=True, skipped=True)

        logger.info("Day change detected, triggering Chronos Reset",
                    user_id=user_id,
                    last_reset=profile.last_reset_date,
                    today=today)
        return await self.execute_daily_reset(user_id)

    async def force_reset(self, user_id: str) -> ChronosResetResult:
        """Operator/test trigger: same algorithm, watermark check bypassed"""
        logger.info("Manual Chronos Reset triggered", user_id=user_id)
        return await self.execute_daily_reset(user_id)

    async def _initialize_watermark(self, profile: UserProfile, today: str) -> ChronosResetResult:
        try:
            await self.repository.update_profile(profile.id, {"last_reset_date": today})
        except Exception as e:
            self._has_run.discard((profile.id, today))
            logger.error("Failed to initialize reset watermark", user_id=profile.id, error=str(e))
            return ChronosResetResult(success=False, errors=[f"Failed to initialize watermark: {e}"])

        logger.info("First run - reset watermark initialized", user_id=profile.id, today=today)
        return ChronosResetResult(success=True, watermark_initialized=True)

    # ==================== RESET ====================

    async def execute_daily_reset(self, user_id: str) -> ChronosResetResult:
        """
        Run the full reconciliation for one user

        Never raises; the result carries success and every collected error.
        """
        result = ChronosResetResult()

        try:
            profile = await self.repository.get_profile(user_id)
            if profile is None:
                logger.warning("Cannot execute reset: no user profile", user_id=user_id)
                result.errors.append(f"No user profile for {user_id}")
                return result

            paths = await self.repository.get_active_paths(user_id)
            quests = await self.repository.get_quests(user_id)
        except Exception as e:
            logger.error("Chronos Reset aborted before any write", user_id=user_id, error=str(e))
            result.errors.append(f"Fatal error: {e}")
            return result

        today = today_iso(self.clock)
        self._phases[user_id] = ResetPhase.RESETTING
        log = logger.bind(user_id=user_id, today=today)
        log.info("Executing Chronos Reset",
                 last_reset_date=profile.last_reset_date,
                 path_count=len(paths),
                 quest_count=len(quests))

        try:
            path_stats = await self._reconcile_paths(user_id, paths, result)
            result.daily_record = await self._snapshot_day(user_id, path_stats, quests, result)
            await self._clear_checklists(user_id, paths)
            await self._migrate_quests(quests, today, result)

            try:
                await self.repository.update_profile(user_id, {"last_reset_date": today})
            except Exception as e:
                log.error("Failed to advance reset watermark", error=str(e))
                result.errors.append(f"Failed to update last reset date: {e}")
                return result

            result.success = True
            await self.dawn_store.publish(user_id, result.daily_record)

            log.info("Chronos Reset completed successfully",
                     paths_processed=result.paths_processed,
                     quests_processed=result.quests_processed,
                     streaks_reset=len(result.streaks_reset),
                     streaks_maintained=len(result.streaks_maintained),
                     errors=len(result.errors))

        except Exception as e:
            log.error("Chronos Reset failed", error=str(e))
            result.errors.append(f"Fatal error: {e}")

        finally:
            self._phases[user_id] = ResetPhase.IDLE

        return result

    async def _reconcile_paths(
        self,
        user_id: str,
        paths: List[PathInstance],
        result: ChronosResetResult
    ) -> List[PathDailyStat]:
        """Snapshot each path and persist its re-evaluated streak"""
        path_stats = []

        for path in paths:
            try:
                yesterday_entry = await self.ledger.get_yesterday_entry(user_id, path.id)
            except Exception as e:
                logger.error("Failed to read yesterday progress - streak left untouched",
                             path_id=path.id, error=str(e))
                result.errors.append(f"Failed to read progress for {path.id}: {e}")
                path_stats.append(self._path_stat(path, None, path.current_streak))
                result.paths_processed += 1
                continue

            new_streak, was_reset = evaluate_streak(path, yesterday_entry)
            path_stats.append(self._path_stat(path, yesterday_entry, new_streak))

            if was_reset:
                result.streaks_reset.append(path.id)
            else:
                result.streaks_maintained.append(path.id)

            if new_streak != path.current_streak:
                try:
                    persisted = await self.repository.update_path_streak(path.id, new_streak)
                    if persisted:
                        logger.debug("Streak updated", path_id=path.id,
                                     old_streak=path.current_streak, new_streak=new_streak)
                    else:
                        result.errors.append(f"Streak for {path.id} was not persisted")
                except Exception as e:
                    logger.error("Failed to update streak", path_id=path.id, error=str(e))
                    result.errors.append(f"Failed to update streak for {path.id}: {e}")

            result.paths_processed += 1

        return path_stats

    def _path_stat(self, path: PathInstance, entry: Optional[DailyPathProgress],
                   streak_after: int) -> PathDailyStat:
        return PathDailyStat(
            path_id=path.id,
            path_name=path.name,
            completed_count=entry.tasks_completed if entry else 0,
            total_count=entry.tasks_total if entry else len(path.task_ids),
            streak_before=path.current_streak,
            streak_after=streak_after,
        )

    async def _snapshot_day(
        self,
        user_id: str,
        path_stats: List[PathDailyStat],
        quests: List[Quest],
        result: ChronosResetResult
    ) -> DailyRecord:
        """Build yesterday's record and persist it; persistence is best-effort"""
        yesterday = yesterday_iso(self.clock)
        completed = [q for q in quests if self._completed_on(q, yesterday)]

        record = DailyRecord(
            id=f"record-{uuid4()}",
            user_id=user_id,
            date=yesterday,
            path_stats=tuple(path_stats),
            quests_completed=len(completed),
            total_coins_earned=sum(int(q.custom_rewards.get("coins", 0) or 0) for q in completed),
            created_at=self.clock.now().isoformat(),
        )

        try:
            await self.repository.save_daily_record(record)
        except Exception as e:
            logger.warning("Failed to save daily record", user_id=user_id, error=str(e))
            result.errors.append(f"Failed to save daily record: {e}")
            return record

        try:
            pruned = await self.repository.prune_daily_records(user_id, self.record_retention)
            if pruned:
                logger.debug("Old daily records pruned", user_id=user_id, pruned=pruned)
        except Exception as e:
            logger.warning("Failed to prune daily records", user_id=user_id, error=str(e))

        return record

    @staticmethod
    def _completed_on(quest: Quest, day: str) -> bool:
        if quest.status != QuestStatus.COMPLETED:
            return False
        if quest.completed_at:
            return quest.completed_at[:10] == day
        return quest.date == day

    async def _clear_checklists(self, user_id: str, paths: List[PathInstance]) -> None:
        """
        Start the new day with empty checklists

        The checklist view is today's ledger row, keyed by date, so the new
        day starts empty without any write. A row already dated today holds
        progress recorded before the reset ran; it is tomorrow's streak
        evidence and is left as it is.
        """
        kept = 0
        for path in paths:
            try:
                entry = await self.ledger.get_today_entry(user_id, path.id)
            except Exception as e:
                logger.warning("Failed to read today's checklist", path_id=path.id, error=str(e))
                continue
            if entry is not None and entry.tasks_completed > 0:
                kept += 1
                logger.debug("Progress recorded before reset kept",
                             path_id=path.id,
                             tasks_completed=entry.tasks_completed,
                             percentage=entry.percentage)

        logger.debug("Daily task states cleared", user_id=user_id, kept=kept)

    async def _migrate_quests(self, quests: List[Quest], today: str,
                              result: ChronosResetResult) -> None:
        """
        Recurring quests come back to today unchecked; unfinished one-off
        quests move to today; finished one-off quests stay where they are
        """
        for quest in quests:
            try:
                if quest.is_recurring or quest.status != QuestStatus.COMPLETED:
                    if quest.date != today or quest.status != QuestStatus.TODAY:
                        await self.repository.update_quest(quest.id, {
                            "date": today,
                            "status": QuestStatus.TODAY.value,
                        })
                        logger.debug("Quest migrated to today",
                                     quest_id=quest.id,
                                     recurring=quest.is_recurring)
                result.quests_processed += 1
            except Exception as e:
                logger.error("Failed to process quest", quest_id=quest.id, error=str(e))
                result.errors.append(f"Failed to process quest {quest.id}: {e}")

    # ==================== PRESENTATION SIGNALS ====================

    async def get_dawn_summary(self, user_id: str) -> Dict[str, Any]:
        return await self.dawn_store.get(user_id)

    async def dismiss_dawn_summary(self, user_id: str) -> bool:
        return await self.dawn_store.dismiss(user_id)

    async def get_daily_records(self, user_id: str, limit: int = 30) -> List[DailyRecord]:
        return await self.repository.get_daily_records(user_id, min(limit, self.record_retention))

    async def get_status(self, user_id: str) -> Optional[Dict[str, Any]]:
        profile = await self.repository.get_profile(user_id)
        if profile is None:
            return None
        summary = await self.dawn_store.get(user_id)
        return {
            "user_id": user_id,
            "today": today_iso(self.clock),
            "last_reset_date": profile.last_reset_date,
            "needs_reset": self.needs_reset(profile),
            "phase": self.get_phase(user_id).value,
            "dawn_summary_pending": summary["pending"],
        }

