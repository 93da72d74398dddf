"""
Progression service: business rules around the streak engine
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog

from app.domain import streak_engine
from app.domain.milestones import MAX_LEVEL, MilestoneTable, floor_will, get_milestone_table
from app.domain.models import (
    IncrementResult, MilestoneRewards, ProgressionState, StreakHistoryEntry,
    StreakState, StreakVisualState
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DailyCompletionResult:
    success: bool
    streak_result: IncrementResult
    visual_state: StreakVisualState


@dataclass(frozen=True)
class LevelUpResult:
    success: bool
    previous_level: int
    new_level: int
    streak_reset: bool
    new_state: StreakState
    history_entry: Optional[StreakHistoryEntry] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class WillAward:
    actual_gain: Decimal
    capped: bool
    new_total: Decimal


@dataclass(frozen=True)
class AggregatedRewards:
    coins: int = 0
    stars: int = 0
    ticket: Optional[str] = None


@dataclass(frozen=True)
class ProgressionSummary:
    level: int
    xp_progress: float
    streak: int
    max_streak: int
    total_will: Decimal
    next_milestone: int
    visual_state: StreakVisualState
    violations: List[str] = field(default_factory=list)


class ProgressionService:
    """Daily completion, level-up and reward rules for a path's streak"""

    def __init__(self, table: Optional[MilestoneTable] = None):
        self.table = table or get_milestone_table()

    def for_archetype(self, archetype: Optional[str]) -> "ProgressionService":
        """Service bound to the milestone table of a path archetype"""
        table = get_milestone_table(archetype)
        if table is self.table:
            return self
        return ProgressionService(table)

    def create_initial_progression_state(self, level: int = 1, max_xp: int = 100) -> ProgressionState:
        return ProgressionState(
            level=level,
            current_xp=0,
            max_xp=max_xp,
            streak_state=streak_engine.create_initial_streak_state(),
        )

    def process_daily_completion(
        self,
        state: StreakState,
        is_all_tasks_complete: bool = True
    ) -> DailyCompletionResult:
        """Increment the streak when every task of the day is done"""
        if not is_all_tasks_complete:
            return DailyCompletionResult(
                success=False,
                streak_result=IncrementResult(
                    new_state=state,
                    milestone_reached=False,
                    sub_milestone_reached=False,
                    rewards=None,
                    sub_rewards=None,
                    will_gain=Decimal("0"),
                ),
                visual_state=streak_engine.get_streak_visual_state(
                    state.current_streak, state.current_level, self.table
                ),
            )

        streak_result = streak_engine.increment_streak(state, self.table)
        visual_state = streak_engine.get_streak_visual_state(
            streak_result.new_state.current_streak,
            streak_result.new_state.current_level,
            self.table,
        )

        logger.info("Daily completion processed",
                    new_streak=streak_result.new_state.current_streak,
                    milestone_reached=streak_result.milestone_reached,
                    sub_milestone_reached=streak_result.sub_milestone_reached,
                    will_gain=str(streak_result.will_gain),
                    visual_stage=visual_state.stage.value)

        return DailyCompletionResult(
            success=True,
            streak_result=streak_result,
            visual_state=visual_state,
        )

    def process_level_up(self, state: StreakState, now: Optional[datetime] = None) -> LevelUpResult:
        """
        Prestige the path to the next level

        The milestone is re-checked here even though callers should have
        verified it; a failed check leaves the state untouched.
        """
        previous_level = state.current_level

        if not streak_engine.has_reached_milestone(state.current_streak, previous_level, self.table):
            milestone = self.table.get(previous_level)
            logger.warning("Level up attempted without reaching milestone",
                           current_streak=state.current_streak,
                           required_streak=milestone.milestone_days if milestone else None)
            return LevelUpResult(
                success=False,
                previous_level=previous_level,
                new_level=previous_level,
                streak_reset=False,
                new_state=state,
                reason="milestone_not_reached",
            )

        if previous_level >= min(MAX_LEVEL, self.table.max_level):
            logger.warning("Level up attempted at max level", level=previous_level)
            return LevelUpResult(
                success=False,
                previous_level=previous_level,
                new_level=previous_level,
                streak_reset=False,
                new_state=state,
                reason="max_level",
            )

        new_state = streak_engine.handle_prestige_reset(
            state, now or datetime.now(timezone.utc), self.table
        )
        history_entry = new_state.streak_history[-1]

        logger.info("Level up processed",
                    previous_level=previous_level,
                    new_level=new_state.current_level,
                    max_streak_saved=history_entry.max_streak)

        return LevelUpResult(
            success=True,
            previous_level=previous_level,
            new_level=new_state.current_level,
            streak_reset=True,
            new_state=new_state,
            history_entry=history_entry,
        )

    def process_streak_break(self, state: StreakState) -> StreakState:
        logger.info("Processing streak break", current_streak=state.current_streak)
        return streak_engine.reset_streak(state)

    def calculate_will_award(self, current_total: Decimal, proposed_gain: Decimal) -> WillAward:
        """Cap-enforced Will grant with a flag telling whether it was clipped"""
        actual_gain = streak_engine.enforce_will_cap(current_total, proposed_gain, self.table)
        capped = actual_gain < Decimal(proposed_gain)
        new_total = floor_will(Decimal(current_total) + actual_gain)

        logger.debug("Will award calculated",
                     current_total=str(current_total),
                     proposed=str(proposed_gain),
                     actual=str(actual_gain),
                     capped=capped)

        return WillAward(actual_gain=actual_gain, capped=capped, new_total=new_total)

    def validate_progression_state(self, state: ProgressionState) -> List[str]:
        """Structural invariant check; returns violations, never raises"""
        errors = []

        if state.level < 1 or state.level > MAX_LEVEL:
            errors.append(f"Invalid level: {state.level}. Must be 1-{MAX_LEVEL}.")

        if state.current_xp < 0 or state.current_xp > state.max_xp:
            errors.append(f"Invalid XP: {state.current_xp}. Must be 0-{state.max_xp}.")

        if state.streak_state.current_streak < 0:
            errors.append(f"Invalid streak: {state.streak_state.current_streak}. Must be >= 0.")

        if state.streak_state.total_will_earned > self.table.max_total_will:
            errors.append(
                f"Will cap exceeded: {state.streak_state.total_will_earned}. "
                f"Max is {self.table.max_total_will}."
            )

        return errors

    def aggregate_rewards(
        self,
        milestone_rewards: Optional[MilestoneRewards],
        sub_milestone_rewards: Optional[MilestoneRewards]
    ) -> AggregatedRewards:
        """Sum coins/stars of whatever fired; tickets come only from the main milestone"""
        coins = 0
        stars = 0
        ticket = None

        if sub_milestone_rewards:
            coins += sub_milestone_rewards.coins
            stars += sub_milestone_rewards.stars

        if milestone_rewards:
            coins += milestone_rewards.coins
            stars += milestone_rewards.stars
            ticket = milestone_rewards.ticket

        return AggregatedRewards(coins=coins, stars=stars, ticket=ticket)

    def get_progression_summary(self, state: ProgressionState) -> ProgressionSummary:
        streak = state.streak_state
        milestone = self.table.get(state.level)
        return ProgressionSummary(
            level=state.level,
            xp_progress=(state.current_xp / state.max_xp) * 100 if state.max_xp else 0.0,
            streak=streak.current_streak,
            max_streak=streak.max_streak,
            total_will=streak.total_will_earned,
            next_milestone=milestone.milestone_days if milestone else 0,
            visual_state=streak_engine.get_streak_visual_state(
                streak.current_streak, state.level, self.table
            ),
            violations=self.validate_progression_state(state),
        )

    def milestone_table_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                "level": m.level,
                "milestone_days": m.milestone_days,
                "coins": m.rewards.coins,
                "stars": m.rewards.stars,
                "ticket": m.rewards.ticket,
                "will_gain": m.will_gain,
                "sub_milestones": self.table.sub_milestones_for_level(m.level),
            }
            for m in self.table
        ]


# Global service instance
progression_service = ProgressionService()
