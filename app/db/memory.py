"""
In-process game repository for offline/demo mode and tests
"""
from copy import deepcopy
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import structlog

from app.domain.models import (
    DailyPathProgress, DailyRecord, PathInstance, Quest, QuestStatus,
    StreakHistoryEntry, UserProfile
)

logger = structlog.get_logger(__name__)


class InMemoryGameRepository:
    """Dict-backed implementation of the GameRepository contract"""

    def __init__(self, tolerate_write_failure: bool = False):
        self.tolerate_write_failure = tolerate_write_failure
        self.profiles: Dict[str, UserProfile] = {}
        self.paths: Dict[str, PathInstance] = {}
        self.progress: Dict[Tuple[str, str, str], DailyPathProgress] = {}
        self.records: Dict[str, List[DailyRecord]] = {}
        self.quests: Dict[str, Quest] = {}

    # ==================== SEEDING ====================

    def add_profile(self, profile: UserProfile) -> UserProfile:
        self.profiles[profile.id] = profile
        return profile

    def add_path(self, path: PathInstance) -> PathInstance:
        self.paths[path.id] = path
        return path

    def add_quest(self, quest: Quest) -> Quest:
        self.quests[quest.id] = quest
        return quest

    # ==================== READS ====================

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        profile = self.profiles.get(user_id)
        return deepcopy(profile) if profile else None

    async def get_active_paths(self, user_id: str) -> List[PathInstance]:
        return [
            deepcopy(path) for path in self.paths.values()
            if path.user_id == user_id and path.is_active
        ]

    async def get_path(self, path_id: str) -> Optional[PathInstance]:
        path = self.paths.get(path_id)
        return deepcopy(path) if path else None

    async def get_daily_progress(self, user_id: str, path_id: str,
                                 date: str) -> Optional[DailyPathProgress]:
        entry = self.progress.get((user_id, path_id, date))
        return deepcopy(entry) if entry else None

    async def get_quests(self, user_id: str) -> List[Quest]:
        return [deepcopy(q) for q in self.quests.values() if q.user_id == user_id]

    async def get_daily_records(self, user_id: str, limit: int = 30) -> List[DailyRecord]:
        records = sorted(self.records.get(user_id, []), key=lambda r: r.date, reverse=True)
        return records[:limit]

    # ==================== WRITES ====================

    async def update_path_streak(self, path_id: str, streak: int) -> bool:
        return await self.update_path(path_id, {"current_streak": streak})

    async def update_path(self, path_id: str, updates: Dict[str, Any]) -> bool:
        path = self.paths.get(path_id)
        if path is None:
            logger.warning("Path not found for update", path_id=path_id)
            return False

        changes = dict(updates)
        if "will_earned" in changes:
            changes["will_earned"] = Decimal(str(changes["will_earned"]))
        if "streak_history" in changes:
            changes["streak_history"] = [
                entry if isinstance(entry, StreakHistoryEntry) else StreakHistoryEntry.from_dict(entry)
                for entry in changes["streak_history"]
            ]

        self.paths[path_id] = replace(path, **changes)
        return True

    async def upsert_daily_progress(self, entry: DailyPathProgress) -> Optional[DailyPathProgress]:
        key = (entry.user_id, entry.path_id, entry.date)
        self.progress[key] = deepcopy(entry)
        return deepcopy(entry)

    async def save_daily_record(self, record: DailyRecord) -> bool:
        self.records.setdefault(record.user_id, []).append(record)
        return True

    async def prune_daily_records(self, user_id: str, keep: int) -> int:
        records = sorted(self.records.get(user_id, []), key=lambda r: r.date, reverse=True)
        pruned = len(records) - keep
        if pruned <= 0:
            return 0
        self.records[user_id] = records[:keep]
        return pruned

    async def update_quest(self, quest_id: str, updates: Dict[str, Any]) -> bool:
        quest = self.quests.get(quest_id)
        if quest is None:
            logger.warning("Quest not found for update", quest_id=quest_id)
            return False

        changes = dict(updates)
        if "status" in changes:
            changes["status"] = QuestStatus(changes["status"])
        self.quests[quest_id] = replace(quest, **changes)
        return True

    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> bool:
        profile = self.profiles.get(user_id)
        if profile is None:
            logger.warning("Profile not found for update", user_id=user_id)
            return False
        self.profiles[user_id] = replace(profile, **updates)
        return True

    async def add_profile_rewards(self, user_id: str, coins: int, stars: int,
                                  will: Decimal) -> bool:
        profile = self.profiles.get(user_id)
        if profile is None:
            logger.warning("Cannot award rewards: profile missing", user_id=user_id)
            return False
        self.profiles[user_id] = replace(
            profile,
            coins=profile.coins + coins,
            stars=profile.stars + stars,
            will_points=profile.will_points + will,
        )
        return True
