"""
Persistence contract consumed by the progression and reset services
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from app.domain.models import (
    DailyPathProgress, DailyRecord, PathInstance, Quest, UserProfile
)


class GameRepository(Protocol):
    """Narrow CRUD surface over profiles, paths, ledger, records and quests"""

    tolerate_write_failure: bool

    # Reads
    async def get_profile(self, user_id: str) -> Optional[UserProfile]: ...

    async def get_active_paths(self, user_id: str) -> List[PathInstance]: ...

    async def get_path(self, path_id: str) -> Optional[PathInstance]: ...

    async def get_daily_progress(self, user_id: str, path_id: str,
                                 date: str) -> Optional[DailyPathProgress]: ...

    async def get_quests(self, user_id: str) -> List[Quest]: ...

    async def get_daily_records(self, user_id: str, limit: int = 30) -> List[DailyRecord]: ...

    # Writes
    async def update_path_streak(self, path_id: str, streak: int) -> bool: ...

    async def update_path(self, path_id: str, updates: Dict[str, Any]) -> bool: ...

    async def upsert_daily_progress(self, entry: DailyPathProgress) -> Optional[DailyPathProgress]: ...

    async def save_daily_record(self, record: DailyRecord) -> bool: ...

    async def prune_daily_records(self, user_id: str, keep: int) -> int: ...

    async def update_quest(self, quest_id: str, updates: Dict[str, Any]) -> bool: ...

    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> bool: ...

    async def add_profile_rewards(self, user_id: str, coins: int, stars: int,
                                  will: Decimal) -> bool: ...


def path_streak_columns(path: PathInstance) -> Dict[str, Any]:
    """Row columns carrying a path's streak state"""
    return {
        "current_streak": path.current_streak,
        "max_streak": path.max_streak,
        "current_level": path.current_level,
        "will_earned": str(path.will_earned),
        "streak_history": [entry.to_dict() for entry in path.streak_history],
    }
