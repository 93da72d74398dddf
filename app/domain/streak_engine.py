"""
Streak engine: pure state transitions over StreakState

Nothing here performs I/O or reads the clock; callers pass timestamps in.
Every function returns a new state and leaves its input untouched.
"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from app.domain.milestones import MilestoneTable, floor_will, get_milestone_table
from app.domain.models import (
    IncrementResult,
    MilestoneConfig,
    StreakHistoryEntry,
    StreakStage,
    StreakState,
    StreakVisualState,
)

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def create_initial_streak_state() -> StreakState:
    return StreakState()


def get_milestone_for_level(level: int, table: Optional[MilestoneTable] = None) -> Optional[MilestoneConfig]:
    return (table or get_milestone_table()).get(level)


def has_reached_milestone(current_streak: int, level: int,
                          table: Optional[MilestoneTable] = None) -> bool:
    """True once the streak is at or past the level's threshold"""
    milestone = get_milestone_for_level(level, table)
    if milestone is None:
        return False
    return current_streak >= milestone.milestone_days


def is_sub_milestone_day(current_streak: int, level: int,
                         table: Optional[MilestoneTable] = None) -> bool:
    return (table or get_milestone_table()).is_sub_milestone_day(current_streak, level)


def enforce_will_cap(current_total: Decimal, proposed_gain: Decimal,
                     table: Optional[MilestoneTable] = None) -> Decimal:
    """
    Clamp a Will grant so the running total never passes the cap

    Result lies in [0, cap - current_total], floored to 2 decimal places.
    """
    cap = (table or get_milestone_table()).max_total_will
    headroom = max(ZERO, Decimal(cap) - Decimal(current_total))
    gain = min(max(ZERO, Decimal(proposed_gain)), headroom)
    return floor_will(gain)


def increment_streak(state: StreakState, table: Optional[MilestoneTable] = None) -> IncrementResult:
    """
    Count one more fully completed day

    The sub-milestone is evaluated first and its Will is capped against the
    incoming total. The main milestone fires only when the streak crosses
    its threshold from below, and its Will is capped against the total that
    already includes the sub-milestone grant.
    """
    table = table or get_milestone_table()
    new_streak = state.current_streak + 1
    new_max_streak = max(state.max_streak, new_streak)

    will_gain = ZERO
    rewards = None
    sub_rewards = None
    milestone_reached = False
    sub_milestone_reached = False

    if table.is_sub_milestone_day(new_streak, state.current_level):
        sub_milestone_reached = True
        sub_rewards = table.sub_milestone.rewards
        will_gain += enforce_will_cap(state.total_will_earned, table.sub_milestone.will_gain, table)

    milestone = table.get(state.current_level)
    if milestone and state.current_streak < milestone.milestone_days <= new_streak:
        milestone_reached = True
        rewards = milestone.rewards
        will_gain += enforce_will_cap(state.total_will_earned + will_gain, milestone.will_gain, table)

    new_state = replace(
        state,
        current_streak=new_streak,
        max_streak=new_max_streak,
        total_will_earned=floor_will(state.total_will_earned + will_gain),
    )

    logger.info("Streak incremented",
                new_streak=new_streak,
                milestone_reached=milestone_reached,
                sub_milestone_reached=sub_milestone_reached,
                will_gain=str(will_gain),
                total_will=str(new_state.total_will_earned))

    return IncrementResult(
        new_state=new_state,
        milestone_reached=milestone_reached,
        sub_milestone_reached=sub_milestone_reached,
        rewards=rewards,
        sub_rewards=sub_rewards,
        will_gain=floor_will(will_gain),
    )


def handle_prestige_reset(state: StreakState, now: datetime,
                          table: Optional[MilestoneTable] = None) -> StreakState:
    """
    Level up: archive the level's streak and start the next level from zero

    Caller must have checked `has_reached_milestone` first. Cumulative Will
    is carried over untouched.
    """
    milestone = get_milestone_for_level(state.current_level, table)
    will_earned = milestone.will_gain if milestone else ZERO

    history_entry = StreakHistoryEntry(
        level=state.current_level,
        max_streak=state.max_streak,
        completed_at=now.isoformat(),
        will_earned=floor_will(will_earned),
    )

    new_state = StreakState(
        current_streak=0,
        max_streak=0,
        current_level=state.current_level + 1,
        total_will_earned=state.total_will_earned,
        streak_history=state.streak_history + (history_entry,),
    )

    logger.info("Prestige reset triggered",
                previous_level=state.current_level,
                new_level=new_state.current_level,
                max_streak_saved=history_entry.max_streak)

    return new_state


def reset_streak(state: StreakState) -> StreakState:
    """Missed day: zero the streak, keep the high-water mark"""
    logger.info("Streak broken", previous_streak=state.current_streak)
    return replace(state, current_streak=0)


def get_streak_visual_state(current_streak: int, level: int,
                            table: Optional[MilestoneTable] = None) -> StreakVisualState:
    """
    Classify the streak into ember / flame / singularity / explosion

    Levels 1-3 top out at flame; the advanced stages unlock from level 4.
    """
    table = table or get_milestone_table()
    milestone = table.get(level)
    if milestone is None:
        return StreakVisualState(
            stage=StreakStage.EMBER,
            days_until_milestone=None,
            progress_percent=0.0,
            is_sub_milestone_day=False,
        )

    milestone_days = milestone.milestone_days
    days_until_milestone = max(0, milestone_days - current_streak)
    progress_percent = min(100.0, (current_streak / milestone_days) * 100)
    advanced_stages = level >= 4

    if current_streak >= milestone_days:
        stage = StreakStage.EXPLOSION if advanced_stages else StreakStage.FLAME
    elif current_streak <= 2:
        stage = StreakStage.EMBER
    elif days_until_milestone <= 2 and advanced_stages:
        stage = StreakStage.SINGULARITY
    else:
        stage = StreakStage.FLAME

    return StreakVisualState(
        stage=stage,
        days_until_milestone=days_until_milestone,
        progress_percent=progress_percent,
        is_sub_milestone_day=table.is_sub_milestone_day(current_streak, level),
    )
