# app/domain/__init__.py
"""
Domain package for the Chronos reset and progression engine
Contains the data model, milestone configuration and streak state machine
"""

from .models import (
    StreakStage, ProgressStatus, QuestStatus, ResetPhase,
    MilestoneRewards, MilestoneConfig, SubMilestoneConfig,
    StreakHistoryEntry, StreakState, StreakVisualState, IncrementResult,
    ProgressionState, UserProfile, PathInstance, DailyPathProgress,
    PathDailyStat, DailyRecord, Quest, ChronosResetResult,
    calculate_percentage, status_for_percentage
)
from .milestones import (
    MAX_LEVEL, MAX_TOTAL_WILL, MilestoneTable, get_milestone_table,
    register_milestone_table, calculate_milestone_days, floor_will,
    validate_milestone_formula, validate_will_cap
)
from . import streak_engine

__all__ = [
    "StreakStage", "ProgressStatus", "QuestStatus", "ResetPhase",
    "MilestoneRewards", "MilestoneConfig", "SubMilestoneConfig",
    "StreakHistoryEntry", "StreakState", "StreakVisualState", "IncrementResult",
    "ProgressionState", "UserProfile", "PathInstance", "DailyPathProgress",
    "PathDailyStat", "DailyRecord", "Quest", "ChronosResetResult",
    "calculate_percentage", "status_for_percentage",
    "MAX_LEVEL", "MAX_TOTAL_WILL", "MilestoneTable", "get_milestone_table",
    "register_milestone_table", "calculate_milestone_days", "floor_will",
    "validate_milestone_formula", "validate_will_cap",
    "streak_engine"
]
