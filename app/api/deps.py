"""
FastAPI dependency injection for services and common dependencies
"""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
import structlog

from app.core.clock import Clock, build_clock
from app.core.config import settings
from app.db.memory import InMemoryGameRepository
from app.db.repository import GameRepository
from app.db.supabase import SupabaseGameRepository
from app.services.chronos_manager import ChronosManager
from app.services.daily_progress_ledger import DailyProgressLedger
from app.services.dawn_summary_store import build_dawn_summary_store
from app.services.path_progress_service import PathProgressService
from app.services.progression_service import ProgressionService, progression_service

logger = structlog.get_logger(__name__)


# Caller identity

def get_current_user_id(
    x_user_id: str = Header(..., alias="X-User-ID", description="Authenticated user id")
) -> str:
    """Caller identity as forwarded by the auth gateway"""
    if not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity"
        )
    return x_user_id.strip()


def require_same_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id)
) -> str:
    """
    Allow access only to the caller's own resources

    Raises:
        HTTPException: 403 when the path user differs from the caller
    """
    if user_id != current_user_id:
        logger.warning("Cross-user access denied", user_id=user_id, caller=current_user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot access another user's progression"
        )
    return user_id


# Service Dependencies

@lru_cache()
def get_clock() -> Clock:
    return build_clock(settings.TIMEZONE, settings.CHRONOS_FIXED_DATE)


@lru_cache()
def get_repository() -> GameRepository:
    """
    Create and cache the game repository for the configured backend
    """
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory game repository")
        return InMemoryGameRepository(tolerate_write_failure=settings.TOLERATE_WRITE_FAILURE)

    try:
        return SupabaseGameRepository(tolerate_write_failure=settings.TOLERATE_WRITE_FAILURE)
    except Exception as e:
        logger.error("Failed to initialize game repository", backend=backend, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage backend unavailable"
        )


def get_progression_service() -> ProgressionService:
    """Dependency for progression service"""
    return progression_service


@lru_cache()
def get_dawn_summary_store():
    return build_dawn_summary_store()


def get_ledger(
    repository: GameRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
) -> DailyProgressLedger:
    return DailyProgressLedger(repository, clock)


def get_path_progress_service(
    repository: GameRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    ledger: DailyProgressLedger = Depends(get_ledger),
    progression: ProgressionService = Depends(get_progression_service)
) -> PathProgressService:
    """Dependency for path progress service"""
    return PathProgressService(repository, clock, ledger, progression)


_chronos_manager = None


def get_chronos_manager(
    repository: GameRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    dawn_store=Depends(get_dawn_summary_store)
) -> ChronosManager:
    """
    Process-wide Chronos manager

    A single instance holds the per-user "already checked today" latch.
    """
    global _chronos_manager

    if _chronos_manager is None:
        _chronos_manager = ChronosManager(
            repository,
            clock,
            dawn_store,
            record_retention=settings.DAILY_RECORD_RETENTION,
        )
    return _chronos_manager


def reset_dependency_cache() -> None:
    """Drop cached services (used after settings change and in tests)"""
    global _chronos_manager

    _chronos_manager = None
    get_clock.cache_clear()
    get_repository.cache_clear()
    get_dawn_summary_store.cache_clear()
