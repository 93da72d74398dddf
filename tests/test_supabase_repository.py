"""Tests for the Supabase-backed game repository using a mocked client."""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.core.errors import PersistenceError
from app.db.supabase import SupabaseGameRepository
from app.domain.models import ProgressStatus

from tests.conftest import make_entry


def make_client():
    client = MagicMock()
    table = MagicMock()
    client.table.return_value = table
    return client, table


@pytest.mark.asyncio
async def test_get_profile_maps_row():
    client, table = make_client()
    table.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(
        data=[{"id": "user-1", "last_reset_date": "2025-03-14", "coins": 10, "will_points": "1.25"}]
    )
    repo = SupabaseGameRepository(client=client)

    profile = await repo.get_profile("user-1")

    client.table.assert_called_with("profiles")
    assert profile.last_reset_date == "2025-03-14"
    assert profile.will_points == Decimal("1.25")


@pytest.mark.asyncio
async def test_upsert_uses_composite_conflict_target():
    client, table = make_client()
    entry = make_entry("p1", "2025-03-15", 3, 3)
    table.upsert.return_value.execute.return_value = MagicMock(data=[entry.to_row()])
    repo = SupabaseGameRepository(client=client)

    stored = await repo.upsert_daily_progress(entry)

    _, kwargs = table.upsert.call_args
    assert kwargs["on_conflict"] == "user_id,path_id,date"
    assert stored.percentage == 100
    assert stored.status == ProgressStatus.COMPLETED


@pytest.mark.asyncio
async def test_write_failure_raises_persistence_error():
    client, table = make_client()
    table.update.return_value.eq.return_value.execute.side_effect = RuntimeError("boom")
    repo = SupabaseGameRepository(client=client)

    with pytest.raises(PersistenceError):
        await repo.update_path_streak("p1", 0)


@pytest.mark.asyncio
async def test_tolerated_write_failure_reports_false():
    client, table = make_client()
    table.update.return_value.eq.return_value.execute.side_effect = RuntimeError("boom")
    repo = SupabaseGameRepository(tolerate_write_failure=True, client=client)

    assert await repo.update_path_streak("p1", 0) is False


@pytest.mark.asyncio
async def test_prune_deletes_records_past_retention():
    client, table = make_client()
    query = table.select.return_value.eq.return_value.order.return_value.range
    query.return_value.execute.return_value = MagicMock(data=[{"id": "r31"}, {"id": "r32"}])
    repo = SupabaseGameRepository(client=client)

    pruned = await repo.prune_daily_records("user-1", 30)

    assert pruned == 2
    query.assert_called_once_with(30, 1029)
    table.delete.return_value.in_.assert_called_once_with("id", ["r31", "r32"])
