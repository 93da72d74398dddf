"""Tests for the Chronos day-change reset."""
from unittest.mock import AsyncMock

import pytest

from app.domain.models import PathInstance, QuestStatus, ResetPhase, UserProfile
from app.services.chronos_manager import evaluate_streak

from tests.conftest import USER_ID, YESTERDAY, make_entry

TODAY_ISO = "2025-03-15"


@pytest.mark.asyncio
async def test_complete_yesterday_maintains_streak(chronos, repo, fitness_path):
    await repo.upsert_daily_progress(make_entry(fitness_path.id, YESTERDAY, 3, 3))

    result = await chronos.check_and_reset(USER_ID)

    assert result.success is True
    assert result.streaks_maintained == [fitness_path.id]
    assert result.streaks_reset == []
    assert repo.paths[fitness_path.id].current_streak == 6
    assert repo.profiles[USER_ID].last_reset_date == TODAY_ISO


@pytest.mark.asyncio
async def test_incomplete_yesterday_resets_streak(chronos, repo, fitness_path):
    await repo.upsert_daily_progress(make_entry(fitness_path.id, YESTERDAY, 3, 2))

    result = await chronos.check_and_reset(USER_ID)

    assert result.success is True
    assert result.streaks_reset == [fitness_path.id]
    path = repo.paths[fitness_path.id]
    assert path.current_streak == 0
    assert path.max_streak == 6
    assert path.current_level == 4


@pytest.mark.asyncio
async def test_untracked_yesterday_resets_streak(chronos, repo, fitness_path):
    result = await chronos.check_and_reset(USER_ID)

    assert result.streaks_reset == [fitness_path.id]
    assert repo.paths[fitness_path.id].current_streak == 0


def test_evaluate_streak_rules(fitness_path):
    assert evaluate_streak(fitness_path, None) == (0, True)
    assert evaluate_streak(fitness_path, make_entry(fitness_path.id, YESTERDAY, 3, 2)) == (0, True)
    assert evaluate_streak(fitness_path, make_entry(fitness_path.id, YESTERDAY, 3, 3)) == (6, False)


@pytest.mark.asyncio
async def test_daily_record_snapshots_yesterday(chronos, repo, fitness_path, make_quest):
    await repo.upsert_daily_progress(make_entry(fitness_path.id, YESTERDAY, 3, 2))
    make_quest("q-done", QuestStatus.COMPLETED, completed_at=f"{YESTERDAY}T18:00:00+00:00",
               custom_rewards={"coins": 20})

    result = await chronos.check_and_reset(USER_ID)

    record = result.daily_record
    assert record.date == YESTERDAY
    assert record.id.startswith("record-")
    assert record.quests_completed == 1
    assert record.total_coins_earned == 20
    stat = record.path_stats[0]
    assert (stat.completed_count, stat.total_count) == (2, 3)
    assert (stat.streak_before, stat.streak_after) == (6, 0)
    assert (await repo.get_daily_records(USER_ID))[0].id == record.id


@pytest.mark.asyncio
async def test_second_check_is_a_noop(chronos, repo, fitness_path):
    await repo.upsert_daily_progress(make_entry(fitness_path.id, YESTERDAY, 3, 3))

    first = await chronos.check_and_reset(USER_ID)
    second = await chronos.check_and_reset(USER_ID)

    assert first.success is True
    assert second.skipped is True
    assert len(repo.records[USER_ID]) == 1


@pytest.mark.asyncio
async def test_reset_is_idempotent_once_watermark_is_today(chronos, repo, fitness_path, clock):
    repo.profiles[USER_ID].last_reset_date = TODAY_ISO

    result = await chronos.check_and_reset(USER_ID)

    assert result.skipped is True
    assert USER_ID not in repo.records
    assert repo.paths[fitness_path.id].current_streak == 6


@pytest.mark.asyncio
async def test_first_run_only_initializes_watermark(chronos, repo, fitness_path):
    repo.profiles[USER_ID].last_reset_date = None

    result = await chronos.check_and_reset(USER_ID)

    assert result.success is True
    assert result.watermark_initialized is True
    assert repo.profiles[USER_ID].last_reset_date == TODAY_ISO
    assert repo.paths[fitness_path.id].current_streak == 6


@pytest.mark.asyncio
async def test_missing_profile_is_fatal_before_any_write(chronos, repo, fitness_path):
    del repo.profiles[USER_ID]
    repo.update_path_streak = AsyncMock()

    result = await chronos.force_reset(USER_ID)

    assert result.success is False
    assert result.errors
    repo.update_path_streak.assert_not_called()


@pytest.mark.asyncio
async def test_path_write_failure_does_not_abort(chronos, repo, fitness_path):
    repo.add_path(PathInstance(id="path-read", user_id=USER_ID, name="Reading",
                               current_streak=2, max_streak=2, task_ids=["r1"]))
    original = repo.update_path_streak

    async def flaky(path_id, streak):
        if path_id == fitness_path.id:
            raise RuntimeError("connection reset")
        return await original(path_id, streak)

    repo.update_path_streak = AsyncMock(side_effect=flaky)

    result = await chronos.check_and_reset(USER_ID)

    assert result.success is True
    assert result.paths_processed == 2
    assert any(fitness_path.id in e for e in result.errors)
    assert repo.paths["path-read"].current_streak == 0
    assert repo.paths[fitness_path.id].current_streak == 6
    assert repo.profiles[USER_ID].last_reset_date == TODAY_ISO


@pytest.mark.asyncio
async def test_record_failure_does_not_abort(chronos, repo, fitness_path, dawn_store):
    repo.save_daily_record = AsyncMock(side_effect=RuntimeError("disk full"))

    result = await chronos.check_and_reset(USER_ID)

    assert result.success is True
    assert any("daily record" in e for e in result.errors)
    assert repo.profiles[USER_ID].last_reset_date == TODAY_ISO
    summary = await dawn_store.get(USER_ID)
    assert summary["pending"] is True


@pytest.mark.asyncio
async def test_watermark_failure_marks_run_failed(chronos, repo, fitness_path, dawn_store):
    repo.update_profile = AsyncMock(side_effect=RuntimeError("timeout"))

    result = await chronos.force_reset(USER_ID)

    assert result.success is False
    assert (await dawn_store.get(USER_ID))["pending"] is False
    assert chronos.get_phase(USER_ID) == ResetPhase.IDLE


@pytest.mark.asyncio
async def test_quest_migration(chronos, repo, make_quest):
    make_quest("recurring", QuestStatus.COMPLETED, recurring=True)
    make_quest("open", QuestStatus.TODAY)
    make_quest("backlog", QuestStatus.BACKLOG, day=None)
    make_quest("done", QuestStatus.COMPLETED)

    result = await chronos.force_reset(USER_ID)

    assert result.quests_processed == 4
    assert repo.quests["recurring"].status == QuestStatus.TODAY
    assert repo.quests["recurring"].date == TODAY_ISO
    assert repo.quests["open"].date == TODAY_ISO
    assert repo.quests["backlog"].status == QuestStatus.TODAY
    assert repo.quests["done"].status == QuestStatus.COMPLETED
    assert repo.quests["done"].date == YESTERDAY


@pytest.mark.asyncio
async def test_quest_migration_failure_does_not_abort(chronos, repo, make_quest):
    make_quest("stuck", QuestStatus.TODAY)
    make_quest("open", QuestStatus.TODAY)
    make_quest("recurring", QuestStatus.COMPLETED, recurring=True)
    original = repo.update_quest

    async def flaky(quest_id, updates):
        if quest_id == "stuck":
            raise RuntimeError("row locked")
        return await original(quest_id, updates)

    repo.update_quest = AsyncMock(side_effect=flaky)

    result = await chronos.force_reset(USER_ID)

    assert result.success is True
    assert result.quests_processed == 2
    assert any("stuck" in e for e in result.errors)
    assert repo.quests["stuck"].date == YESTERDAY
    assert repo.quests["open"].date == TODAY_ISO
    assert repo.quests["recurring"].status == QuestStatus.TODAY
    assert repo.profiles[USER_ID].last_reset_date == TODAY_ISO


@pytest.mark.asyncio
async def test_reset_keeps_progress_recorded_earlier_today(chronos, repo, ledger, fitness_path):
    await ledger.upsert_today(USER_ID, fitness_path.id, 3, 2, ["t1", "t2"])

    await chronos.force_reset(USER_ID)

    entry = await ledger.get_today_entry(USER_ID, fitness_path.id)
    assert entry.tasks_completed == 2
    assert entry.tasks_total == 3
    assert entry.completed_task_ids == ["t1", "t2"]


@pytest.mark.asyncio
async def test_completion_before_check_survives_next_reset(
        chronos, repo, clock, ledger, progress_service, fitness_path):
    await repo.upsert_daily_progress(make_entry(fitness_path.id, YESTERDAY, 3, 3))
    await progress_service.record_progress(USER_ID, fitness_path.id, 3, 3, ["t1", "t2", "t3"])
    assert repo.paths[fitness_path.id].current_streak == 7

    await chronos.check_and_reset(USER_ID)
    entry = await ledger.get_today_entry(USER_ID, fitness_path.id)
    assert (entry.tasks_completed, entry.percentage) == (3, 100)

    clock.advance()
    result = await chronos.check_and_reset(USER_ID)

    assert result.streaks_maintained == [fitness_path.id]
    assert result.streaks_reset == []
    assert repo.paths[fitness_path.id].current_streak == 7


@pytest.mark.asyncio
async def test_force_reset_ignores_watermark(chronos, repo, fitness_path):
    repo.profiles[USER_ID].last_reset_date = TODAY_ISO

    result = await chronos.force_reset(USER_ID)

    assert result.success is True
    assert result.paths_processed == 1


@pytest.mark.asyncio
async def test_dawn_summary_published_and_dismissed(chronos, fitness_path):
    result = await chronos.check_and_reset(USER_ID)

    summary = await chronos.get_dawn_summary(USER_ID)
    assert summary["pending"] is True
    assert summary["record"].id == result.daily_record.id

    await chronos.dismiss_dawn_summary(USER_ID)
    summary = await chronos.get_dawn_summary(USER_ID)
    assert summary["pending"] is False
    assert summary["record"] is not None


@pytest.mark.asyncio
async def test_next_day_runs_again(chronos, repo, clock, fitness_path):
    await chronos.check_and_reset(USER_ID)
    clock.advance()

    result = await chronos.check_and_reset(USER_ID)

    assert result.skipped is False
    assert result.success is True
    assert repo.profiles[USER_ID].last_reset_date == "2025-03-16"


@pytest.mark.asyncio
async def test_records_pruned_to_retention(repo, clock, ledger, dawn_store, fitness_path):
    from app.services.chronos_manager import ChronosManager

    manager = ChronosManager(repo, clock, dawn_store, ledger=ledger, record_retention=3)
    for _ in range(5):
        await manager.force_reset(USER_ID)
        clock.advance()

    records = await repo.get_daily_records(USER_ID)
    assert len(records) == 3
    assert records[0].date > records[-1].date


@pytest.mark.asyncio
async def test_status_reports_pending_reset(chronos, repo):
    repo.add_profile(UserProfile(id="u2", last_reset_date="2025-03-10"))

    status = await chronos.get_status("u2")

    assert status["needs_reset"] is True
    assert status["phase"] == "idle"
    assert await chronos.get_status("ghost") is None


@pytest.mark.asyncio
async def test_repeated_force_reset_yields_same_streaks(chronos, repo, fitness_path):
    await repo.upsert_daily_progress(make_entry(fitness_path.id, YESTERDAY, 3, 3))

    first = await chronos.force_reset(USER_ID)
    second = await chronos.force_reset(USER_ID)

    assert first.streaks_maintained == second.streaks_maintained == [fitness_path.id]
    assert [s.streak_after for s in first.daily_record.path_stats] == \
        [s.streak_after for s in second.daily_record.path_stats] == [6]
