"""Shared fixtures for the progression and reset tests."""
from datetime import date
from decimal import Decimal

import pytest

from app.core.clock import FixedClock
from app.db.memory import InMemoryGameRepository
from app.domain.models import (
    DailyPathProgress, PathInstance, Quest, QuestStatus, UserProfile,
    calculate_percentage, status_for_percentage
)
from app.services.chronos_manager import ChronosManager
from app.services.daily_progress_ledger import DailyProgressLedger
from app.services.dawn_summary_store import InMemoryDawnSummaryStore
from app.services.path_progress_service import PathProgressService
from app.services.progression_service import ProgressionService

USER_ID = "user-1"
TODAY = date(2025, 3, 15)
YESTERDAY = "2025-03-14"


def make_entry(path_id: str, day: str, total: int, completed: int,
               user_id: str = USER_ID) -> DailyPathProgress:
    """Ledger entry built directly, bypassing the today-only write rule"""
    percentage = calculate_percentage(total, completed)
    return DailyPathProgress(
        user_id=user_id,
        path_id=path_id,
        date=day,
        tasks_total=total,
        tasks_completed=completed,
        percentage=percentage,
        status=status_for_percentage(percentage),
    )


@pytest.fixture
def clock():
    return FixedClock(TODAY)


@pytest.fixture
def repo():
    repository = InMemoryGameRepository()
    repository.add_profile(UserProfile(id=USER_ID, last_reset_date=YESTERDAY))
    return repository


@pytest.fixture
def fitness_path(repo):
    return repo.add_path(PathInstance(
        id="path-fitness",
        user_id=USER_ID,
        name="Fitness",
        current_level=4,
        current_streak=6,
        max_streak=6,
        will_earned=Decimal("1.25"),
        task_ids=["t1", "t2", "t3"],
    ))


@pytest.fixture
def dawn_store():
    return InMemoryDawnSummaryStore()


@pytest.fixture
def ledger(repo, clock):
    return DailyProgressLedger(repo, clock)


@pytest.fixture
def progress_service(repo, clock, ledger):
    return PathProgressService(repo, clock, ledger, ProgressionService())


@pytest.fixture
def chronos(repo, clock, ledger, dawn_store):
    return ChronosManager(repo, clock, dawn_store, ledger=ledger, record_retention=30)


@pytest.fixture
def make_quest(repo):
    def _make(quest_id: str, status: QuestStatus, recurring: bool = False,
              day: str = YESTERDAY, **kwargs) -> Quest:
        return repo.add_quest(Quest(
            id=quest_id,
            user_id=USER_ID,
            title=quest_id,
            date=day,
            status=status,
            is_recurring=recurring,
            **kwargs
        ))
    return _make
