"""
Pydantic models for path progression and the Chronos reset API
"""
from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional
from decimal import Decimal


# ==================== MILESTONE MODELS ====================

class MilestoneRow(BaseModel):
    """One level of the milestone table"""
    level: int
    milestone_days: int
    coins: int
    stars: int
    ticket: Optional[str] = None
    will_gain: Decimal
    sub_milestones: int = Field(0, description="Sub-milestone rewards available at this level")


class MilestoneTableResponse(BaseModel):
    archetype: str
    max_total_will: Decimal
    total_will_from_milestones: Decimal
    formula_valid: bool
    will_cap_valid: bool
    milestones: List[MilestoneRow]


# ==================== PATH PROGRESS MODELS ====================

class ProgressUpdateRequest(BaseModel):
    """Today's checklist state for one path"""
    tasks_total: int = Field(..., ge=0)
    tasks_completed: int = Field(..., ge=0)
    completed_task_ids: List[str] = Field(default_factory=list)
    completed_subtask_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_counts(self):
        if self.tasks_completed > self.tasks_total:
            raise ValueError("tasks_completed cannot exceed tasks_total")
        return self


class TaskToggleRequest(BaseModel):
    """Optional checklist definition; defaults to the path's own task list"""
    subtask_id: Optional[str] = Field(None, description="Toggle this subtask instead of the whole task")
    task_ids: Optional[List[str]] = None
    subtasks_by_task: Dict[str, List[str]] = Field(default_factory=dict)


class RewardsPayload(BaseModel):
    coins: int = 0
    stars: int = 0
    ticket: Optional[str] = None
    will: Decimal = Decimal("0")


class TaskProgressResponse(BaseModel):
    path_id: str
    date: str
    status: str
    percentage: int
    tasks_total: int
    tasks_completed: int
    completed_task_ids: List[str]
    completed_subtask_ids: List[str]
    streak: int
    streak_incremented: bool
    milestone_reached: bool = False
    sub_milestone_reached: bool = False
    rewards: Optional[RewardsPayload] = None
    persisted: bool = True


class StreakHistoryItem(BaseModel):
    level: int
    max_streak: int
    completed_at: str
    will_earned: Decimal


class LevelUpResponse(BaseModel):
    path_id: str
    success: bool
    previous_level: int
    new_level: int
    streak_reset: bool
    reason: Optional[str] = None
    history_entry: Optional[StreakHistoryItem] = None


class VisualStatePayload(BaseModel):
    stage: str
    days_until_milestone: Optional[int] = None
    progress_percent: float
    is_sub_milestone_day: bool


class PathStreakResponse(BaseModel):
    """Streak and progression overview for one path"""
    path_id: str
    path_name: str
    level: int
    current_streak: int
    max_streak: int
    total_will: Decimal
    next_milestone: int
    xp_progress: float
    last_completed_date: Optional[str] = None
    visual_state: VisualStatePayload
    streak_history: List[StreakHistoryItem] = Field(default_factory=list)
    violations: List[str] = Field(default_factory=list)


# ==================== CHRONOS MODELS ====================

class PathDailyStatPayload(BaseModel):
    path_id: str
    path_name: str
    completed_count: int
    total_count: int
    streak_before: int
    streak_after: int


class DailyRecordPayload(BaseModel):
    id: str
    user_id: str
    date: str
    path_stats: List[PathDailyStatPayload]
    quests_completed: int
    total_coins_earned: int
    created_at: Optional[str] = None


class ChronosResetResponse(BaseModel):
    success: bool
    skipped: bool = False
    watermark_initialized: bool = False
    paths_processed: int = 0
    quests_processed: int = 0
    streaks_reset: List[str] = Field(default_factory=list)
    streaks_maintained: List[str] = Field(default_factory=list)
    daily_record: Optional[DailyRecordPayload] = None
    errors: List[str] = Field(default_factory=list)


class ChronosStatusResponse(BaseModel):
    user_id: str
    today: str
    last_reset_date: Optional[str] = None
    needs_reset: bool
    phase: str
    dawn_summary_pending: bool


class DawnSummaryResponse(BaseModel):
    """Pending flag plus the record the summary shows"""
    pending: bool
    record: Optional[DailyRecordPayload] = None


class DailyRecordsResponse(BaseModel):
    user_id: str
    count: int
    records: List[DailyRecordPayload]
