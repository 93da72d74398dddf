"""
Domain models and data classes for paths, streaks, quests and daily records
"""

from dataclasses import asdict, dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class StreakStage(str, Enum):
    """Visual stage of a streak flame"""
    EMBER = "ember"
    FLAME = "flame"
    SINGULARITY = "singularity"
    EXPLOSION = "explosion"


class ProgressStatus(str, Enum):
    """Daily path progress status"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class QuestStatus(str, Enum):
    """Quest lifecycle status"""
    BACKLOG = "backlog"
    TODAY = "today"
    COMPLETED = "completed"


class ResetPhase(str, Enum):
    """Per-user state of the day-change machine"""
    IDLE = "idle"
    RESETTING = "resetting"


# ==================== MILESTONE CONFIGURATION ====================

@dataclass(frozen=True)
class MilestoneRewards:
    """Coins / stars bundle, optionally with a ticket id"""
    coins: int
    stars: int
    ticket: Optional[str] = None


@dataclass(frozen=True)
class MilestoneConfig:
    """Streak threshold and rewards for one progression level"""
    level: int
    milestone_days: int
    rewards: MilestoneRewards
    will_gain: Decimal


@dataclass(frozen=True)
class SubMilestoneConfig:
    """Mid-streak bonus granted on fixed streak days"""
    days: Tuple[int, ...]
    rewards: MilestoneRewards
    will_gain: Decimal


# ==================== STREAK STATE ====================

@dataclass(frozen=True)
class StreakHistoryEntry:
    """Archived result of one prestige event"""
    level: int
    max_streak: int
    completed_at: str
    will_earned: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "max_streak": self.max_streak,
            "completed_at": self.completed_at,
            "will_earned": str(self.will_earned),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreakHistoryEntry":
        return cls(
            level=int(data["level"]),
            max_streak=int(data["max_streak"]),
            completed_at=str(data["completed_at"]),
            will_earned=Decimal(str(data.get("will_earned", "0"))),
        )


@dataclass(frozen=True)
class StreakState:
    """Streak progression owned by a single path instance"""
    current_streak: int = 0
    max_streak: int = 0
    current_level: int = 1
    total_will_earned: Decimal = Decimal("0")
    streak_history: Tuple[StreakHistoryEntry, ...] = ()


@dataclass(frozen=True)
class StreakVisualState:
    """Derived presentation state of a streak"""
    stage: StreakStage
    days_until_milestone: Optional[int]
    progress_percent: float
    is_sub_milestone_day: bool


@dataclass(frozen=True)
class IncrementResult:
    """Outcome of counting one more completed day"""
    new_state: StreakState
    milestone_reached: bool
    sub_milestone_reached: bool
    rewards: Optional[MilestoneRewards]
    sub_rewards: Optional[MilestoneRewards]
    will_gain: Decimal


@dataclass(frozen=True)
class ProgressionState:
    """Path level / XP together with its streak state"""
    level: int
    current_xp: int
    max_xp: int
    streak_state: StreakState


# ==================== PERSISTED RECORDS ====================

@dataclass
class UserProfile:
    """Owning user profile (subset used by the reset engine)"""
    id: str
    last_reset_date: Optional[str] = None
    display_name: Optional[str] = None
    coins: int = 0
    stars: int = 0
    will_points: Decimal = Decimal("0")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=str(row["id"]),
            last_reset_date=row.get("last_reset_date"),
            display_name=row.get("display_name"),
            coins=int(row.get("coins") or 0),
            stars=int(row.get("stars") or 0),
            will_points=Decimal(str(row.get("will_points") or "0")),
        )


@dataclass
class PathInstance:
    """A user's active path with its streak columns"""
    id: str
    user_id: str
    name: str = "Unknown Path"
    archetype: str = "default"
    current_level: int = 1
    current_xp: int = 0
    xp_to_level_up: int = 100
    current_streak: int = 0
    max_streak: int = 0
    will_earned: Decimal = Decimal("0")
    streak_history: List[StreakHistoryEntry] = field(default_factory=list)
    last_completed_date: Optional[str] = None
    task_ids: List[str] = field(default_factory=list)
    is_active: bool = True

    def to_streak_state(self) -> StreakState:
        return StreakState(
            current_streak=self.current_streak,
            max_streak=self.max_streak,
            current_level=self.current_level,
            total_will_earned=self.will_earned,
            streak_history=tuple(self.streak_history),
        )

    def to_progression_state(self) -> ProgressionState:
        return ProgressionState(
            level=self.current_level,
            current_xp=self.current_xp,
            max_xp=self.xp_to_level_up,
            streak_state=self.to_streak_state(),
        )

    def with_streak_state(self, state: StreakState) -> "PathInstance":
        return replace(
            self,
            current_streak=state.current_streak,
            max_streak=state.max_streak,
            current_level=state.current_level,
            will_earned=state.total_will_earned,
            streak_history=list(state.streak_history),
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PathInstance":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            name=row.get("name") or "Unknown Path",
            archetype=row.get("archetype") or "default",
            current_level=int(row.get("current_level") or 1),
            current_xp=int(row.get("current_xp") or 0),
            xp_to_level_up=int(row.get("xp_to_level_up") or 100),
            current_streak=int(row.get("current_streak") or 0),
            max_streak=int(row.get("max_streak") or 0),
            will_earned=Decimal(str(row.get("will_earned") or "0")),
            streak_history=[
                StreakHistoryEntry.from_dict(entry)
                for entry in (row.get("streak_history") or [])
            ],
            last_completed_date=row.get("last_completed_date"),
            task_ids=list(row.get("task_ids") or []),
            is_active=bool(row.get("is_active", True)),
        )


@dataclass
class DailyPathProgress:
    """Ledger entry for one (user, path, day)"""
    user_id: str
    path_id: str
    date: str
    tasks_total: int
    tasks_completed: int
    percentage: int
    status: ProgressStatus
    completed_task_ids: List[str] = field(default_factory=list)
    completed_subtask_ids: List[str] = field(default_factory=list)

    def to_row(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "path_id": self.path_id,
            "date": self.date,
            "tasks_total": self.tasks_total,
            "tasks_completed": self.tasks_completed,
            "status": self.status.value,
            "completed_task_ids": list(self.completed_task_ids),
            "completed_subtask_ids": list(self.completed_subtask_ids),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DailyPathProgress":
        total = int(row.get("tasks_total") or 0)
        completed = int(row.get("tasks_completed") or 0)
        percentage = row.get("percentage")
        if percentage is None:
            percentage = calculate_percentage(total, completed)
        return cls(
            user_id=str(row["user_id"]),
            path_id=str(row["path_id"]),
            date=str(row["date"]),
            tasks_total=total,
            tasks_completed=completed,
            percentage=int(percentage),
            status=ProgressStatus(row.get("status") or ProgressStatus.PENDING.value),
            completed_task_ids=list(row.get("completed_task_ids") or []),
            completed_subtask_ids=list(row.get("completed_subtask_ids") or []),
        )


@dataclass(frozen=True)
class PathDailyStat:
    """Per-path line of a daily record"""
    path_id: str
    path_name: str
    completed_count: int
    total_count: int
    streak_before: int
    streak_after: int


@dataclass(frozen=True)
class DailyRecord:
    """Immutable snapshot of one user's day"""
    id: str
    user_id: str
    date: str
    path_stats: Tuple[PathDailyStat, ...]
    quests_completed: int
    total_coins_earned: int
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date,
            "path_stats": [asdict(stat) for stat in self.path_stats],
            "quests_completed": self.quests_completed,
            "total_coins_earned": self.total_coins_earned,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyRecord":
        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            date=str(data["date"]),
            path_stats=tuple(PathDailyStat(**stat) for stat in data.get("path_stats") or []),
            quests_completed=int(data.get("quests_completed") or 0),
            total_coins_earned=int(data.get("total_coins_earned") or 0),
            created_at=str(data.get("created_at") or ""),
        )


@dataclass
class Quest:
    """One-off or recurring task outside the streak system"""
    id: str
    user_id: str
    title: str
    date: Optional[str]
    status: QuestStatus
    is_recurring: bool = False
    subtasks: List[Dict[str, Any]] = field(default_factory=list)
    custom_rewards: Dict[str, Any] = field(default_factory=dict)
    completed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Quest":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row.get("title") or "",
            date=row.get("date"),
            status=QuestStatus(row.get("status") or QuestStatus.BACKLOG.value),
            is_recurring=bool(row.get("is_recurring", False)),
            subtasks=list(row.get("subtasks") or []),
            custom_rewards=dict(row.get("custom_rewards") or {}),
            completed_at=row.get("completed_at"),
        )


@dataclass
class ChronosResetResult:
    """Outcome of one reset run; errors are collected, never raised"""
    success: bool = False
    paths_processed: int = 0
    quests_processed: int = 0
    streaks_reset: List[str] = field(default_factory=list)
    streaks_maintained: List[str] = field(default_factory=list)
    daily_record: Optional[DailyRecord] = None
    errors: List[str] = field(default_factory=list)
    watermark_initialized: bool = False
    skipped: bool = False


def calculate_percentage(tasks_total: int, tasks_completed: int) -> int:
    """round(100 * completed / total), half up; 0 when nothing is tracked"""
    if tasks_total <= 0:
        return 0
    return (200 * tasks_completed + tasks_total) // (2 * tasks_total)


def status_for_percentage(percentage: int) -> ProgressStatus:
    return ProgressStatus.COMPLETED if percentage == 100 else ProgressStatus.PENDING
