"""
Supabase database client and game repository

Tables: profiles, player_identities, daily_path_progress, daily_records,
quests. `daily_path_progress` carries a unique (user_id, path_id, date)
constraint used as the upsert conflict target.
"""
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import structlog

from supabase import create_client, Client

from app.core.config import settings
from app.core.errors import PersistenceError
from app.domain.models import (
    DailyPathProgress, DailyRecord, PathInstance, Quest, UserProfile
)

logger = structlog.get_logger(__name__)

# Global Supabase client instances
_supabase_client: Optional[Client] = None
_supabase_admin: Optional[Client] = None


def init_supabase():
    """Initialize Supabase clients"""
    global _supabase_client, _supabase_admin

    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables are required")

    try:
        # Client with anon key (for user operations)
        _supabase_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY
        )

        # Admin client with service role key (for admin operations)
        _supabase_admin = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY
        )

        logger.info("Supabase clients initialized successfully")

    except Exception as e:
        logger.error("Failed to initialize Supabase", error=str(e))
        raise


def get_supabase_client() -> Client:
    """Get Supabase client for user operations"""
    if _supabase_client is None:
        init_supabase()
    return _supabase_client


def get_supabase_admin() -> Client:
    """Get Supabase admin client for privileged operations"""
    if _supabase_admin is None:
        init_supabase()
    return _supabase_admin


class SupabaseService:
    """Base service class with Supabase client access"""

    def __init__(self, use_admin: bool = False, client: Optional[Client] = None):
        if client is not None:
            self.client = client
        else:
            self.client = get_supabase_admin() if use_admin else get_supabase_client()

    @property
    def db(self):
        """Shorthand for database operations"""
        return self.client.table


class SupabaseGameRepository(SupabaseService):
    """Game state persistence backed by Supabase tables"""

    def __init__(self, tolerate_write_failure: bool = False, client: Optional[Client] = None):
        super().__init__(use_admin=True, client=client)
        self.tolerate_write_failure = tolerate_write_failure

    def _write(self, operation: str, query_func: Callable[[], Any], **context) -> Any:
        """
        Run a write; failures raise PersistenceError unless writes are tolerated,
        in which case they are logged and None is returned
        """
        try:
            result = query_func()
            logger.debug("Supabase write completed", operation=operation, **context)
            return result
        except Exception as e:
            if self.tolerate_write_failure:
                logger.warning("Supabase write failed - tolerated",
                               operation=operation, error=str(e), **context)
                return None
            logger.error("Supabase write failed", operation=operation, error=str(e), **context)
            raise PersistenceError(operation, str(e)) from e

    # ==================== READS ====================

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        result = self.db('profiles').select('*').eq('id', user_id).limit(1).execute()
        if not result.data:
            return None
        return UserProfile.from_row(result.data[0])

    async def get_active_paths(self, user_id: str) -> List[PathInstance]:
        result = self.db('player_identities').select('*').eq(
            'user_id', user_id
        ).eq('is_active', True).execute()
        return [PathInstance.from_row(row) for row in result.data or []]

    async def get_path(self, path_id: str) -> Optional[PathInstance]:
        result = self.db('player_identities').select('*').eq('id', path_id).limit(1).execute()
        if not result.data:
            return None
        return PathInstance.from_row(result.data[0])

    async def get_daily_progress(
        self,
        user_id: str,
        path_id: str,
        date: str
    ) -> Optional[DailyPathProgress]:
        result = self.db('daily_path_progress').select('*').eq(
            'user_id', user_id
        ).eq('path_id', path_id).eq('date', date).limit(1).execute()
        if not result.data:
            return None
        return DailyPathProgress.from_row(result.data[0])

    async def get_quests(self, user_id: str) -> List[Quest]:
        result = self.db('quests').select('*').eq('user_id', user_id).execute()
        return [Quest.from_row(row) for row in result.data or []]

    async def get_daily_records(self, user_id: str, limit: int = 30) -> List[DailyRecord]:
        result = self.db('daily_records').select('*').eq(
            'user_id', user_id
        ).order('date', desc=True).limit(limit).execute()
        return [DailyRecord.from_dict(row) for row in result.data or []]

    # ==================== WRITES ====================

    async def update_path_streak(self, path_id: str, streak: int) -> bool:
        return await self.update_path(path_id, {'current_streak': streak})

    async def update_path(self, path_id: str, updates: Dict[str, Any]) -> bool:
        result = self._write(
            'update_path',
            lambda: self.db('player_identities').update(updates).eq('id', path_id).execute(),
            path_id=path_id,
        )
        return result is not None

    async def upsert_daily_progress(self, entry: DailyPathProgress) -> Optional[DailyPathProgress]:
        result = self._write(
            'upsert_daily_progress',
            lambda: self.db('daily_path_progress').upsert(
                entry.to_row(), on_conflict='user_id,path_id,date'
            ).execute(),
            path_id=entry.path_id,
            date=entry.date,
        )
        if result is None or not result.data:
            return None
        return DailyPathProgress.from_row(result.data[0])

    async def save_daily_record(self, record: DailyRecord) -> bool:
        result = self._write(
            'save_daily_record',
            lambda: self.db('daily_records').insert(record.to_dict()).execute(),
            user_id=record.user_id,
            date=record.date,
        )
        return result is not None

    async def prune_daily_records(self, user_id: str, keep: int) -> int:
        stale = self.db('daily_records').select('id').eq(
            'user_id', user_id
        ).order('date', desc=True).range(keep, keep + 999).execute()

        stale_ids = [row['id'] for row in stale.data or []]
        if not stale_ids:
            return 0

        self._write(
            'prune_daily_records',
            lambda: self.db('daily_records').delete().in_('id', stale_ids).execute(),
            user_id=user_id,
        )
        return len(stale_ids)

    async def update_quest(self, quest_id: str, updates: Dict[str, Any]) -> bool:
        result = self._write(
            'update_quest',
            lambda: self.db('quests').update(updates).eq('id', quest_id).execute(),
            quest_id=quest_id,
        )
        return result is not None

    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> bool:
        result = self._write(
            'update_profile',
            lambda: self.db('profiles').update(updates).eq('id', user_id).execute(),
            user_id=user_id,
        )
        return result is not None

    async def add_profile_rewards(self, user_id: str, coins: int, stars: int,
                                  will: Decimal) -> bool:
        profile = await self.get_profile(user_id)
        if profile is None:
            logger.warning("Cannot award rewards: profile missing", user_id=user_id)
            return False

        return await self.update_profile(user_id, {
            'coins': profile.coins + coins,
            'stars': profile.stars + stars,
            'will_points': str(profile.will_points + will),
        })
