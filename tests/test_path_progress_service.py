"""Tests for checklist toggles, the intra-day streak rule and level-ups."""
from decimal import Decimal

import pytest

from app.core.errors import PathNotFoundError
from app.domain.models import PathInstance, ProgressStatus

from tests.conftest import USER_ID


@pytest.mark.asyncio
async def test_completing_all_tasks_increments_streak_once(progress_service, fitness_path, repo):
    await progress_service.toggle_task(USER_ID, fitness_path.id, "t1")
    await progress_service.toggle_task(USER_ID, fitness_path.id, "t2")
    result = await progress_service.toggle_task(USER_ID, fitness_path.id, "t3")

    assert result.status == ProgressStatus.COMPLETED
    assert result.streak_incremented is True
    assert result.streak == 7
    assert result.increment.sub_milestone_reached is True

    path = repo.paths[fitness_path.id]
    assert path.current_streak == 7
    assert path.last_completed_date == "2025-03-15"
    assert path.will_earned == Decimal("1.40")

    profile = repo.profiles[USER_ID]
    assert profile.coins == 50
    assert profile.will_points == Decimal("0.15")


@pytest.mark.asyncio
async def test_toggle_off_and_on_does_not_double_increment(progress_service, fitness_path, repo):
    for task_id in ("t1", "t2", "t3"):
        await progress_service.toggle_task(USER_ID, fitness_path.id, task_id)

    unchecked = await progress_service.toggle_task(USER_ID, fitness_path.id, "t3")
    assert unchecked.percentage == 67
    assert unchecked.streak == 7

    rechecked = await progress_service.toggle_task(USER_ID, fitness_path.id, "t3")
    assert rechecked.status == ProgressStatus.COMPLETED
    assert rechecked.streak_incremented is False
    assert repo.paths[fitness_path.id].current_streak == 7
    assert repo.profiles[USER_ID].coins == 50


@pytest.mark.asyncio
async def test_record_progress_partial_day(progress_service, fitness_path, repo):
    result = await progress_service.record_progress(USER_ID, fitness_path.id, 3, 2, ["t1", "t2"])

    assert result.status == ProgressStatus.PENDING
    assert result.percentage == 67
    assert result.streak_incremented is False
    assert repo.paths[fitness_path.id].current_streak == 6


@pytest.mark.asyncio
async def test_subtasks_auto_check_parent(progress_service, fitness_path):
    subtasks = {"t1": ["s1", "s2"]}

    await progress_service.toggle_subtask(USER_ID, fitness_path.id, "t1", "s1",
                                          subtasks_by_task=subtasks)
    result = await progress_service.toggle_subtask(USER_ID, fitness_path.id, "t1", "s2",
                                                   subtasks_by_task=subtasks)

    assert "t1" in result.entry.completed_task_ids
    assert result.entry.completed_subtask_ids == ["s1", "s2"]
    assert result.percentage == 33


@pytest.mark.asyncio
async def test_unknown_task_rejected(progress_service, fitness_path):
    with pytest.raises(ValueError):
        await progress_service.toggle_task(USER_ID, fitness_path.id, "nope")


@pytest.mark.asyncio
async def test_other_users_path_is_not_found(progress_service, repo):
    repo.add_path(PathInstance(id="foreign", user_id="someone-else", task_ids=["t1"]))

    with pytest.raises(PathNotFoundError):
        await progress_service.toggle_task(USER_ID, "foreign", "t1")


@pytest.mark.asyncio
async def test_level_up_persists_prestige(progress_service, repo):
    repo.add_path(PathInstance(id="p9", user_id=USER_ID, current_level=4,
                               current_streak=9, max_streak=9, current_xp=40,
                               will_earned=Decimal("5.80")))

    result = await progress_service.level_up(USER_ID, "p9")

    assert result.success is True
    path = repo.paths["p9"]
    assert path.current_level == 5
    assert path.current_streak == 0
    assert path.current_xp == 0
    assert path.will_earned == Decimal("5.80")
    assert path.streak_history[0].level == 4


@pytest.mark.asyncio
async def test_level_up_refused_leaves_path_untouched(progress_service, fitness_path, repo):
    result = await progress_service.level_up(USER_ID, fitness_path.id)

    assert result.success is False
    assert repo.paths[fitness_path.id].current_level == 4
    assert repo.paths[fitness_path.id].current_streak == 6


@pytest.mark.asyncio
async def test_overview_summary(progress_service, fitness_path):
    path, summary = await progress_service.get_overview(USER_ID, fitness_path.id)

    assert path.name == "Fitness"
    assert summary.level == 4
    assert summary.streak == 6
    assert summary.next_milestone == 9
