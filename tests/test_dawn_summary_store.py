"""Tests for the dawn summary signal stores."""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.models import DailyRecord, PathDailyStat
from app.services.dawn_summary_store import InMemoryDawnSummaryStore, RedisDawnSummaryStore


def make_record() -> DailyRecord:
    return DailyRecord(
        id="record-1",
        user_id="user-1",
        date="2025-03-14",
        path_stats=(PathDailyStat("p1", "Fitness", 3, 3, 6, 6),),
        quests_completed=2,
        total_coins_earned=40,
        created_at="2025-03-15T12:00:00+00:00",
    )


@pytest.mark.asyncio
async def test_in_memory_store_publish_and_dismiss():
    store = InMemoryDawnSummaryStore()
    assert (await store.get("user-1")) == {"pending": False, "record": None}

    await store.publish("user-1", make_record())
    summary = await store.get("user-1")
    assert summary["pending"] is True
    assert summary["record"].id == "record-1"

    await store.dismiss("user-1")
    summary = await store.get("user-1")
    assert summary["pending"] is False
    assert summary["record"].id == "record-1"


@pytest.mark.asyncio
async def test_redis_store_publish_writes_hash_with_ttl():
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, True])
    client = MagicMock()
    client.pipeline.return_value = pipe
    store = RedisDawnSummaryStore(client=client, ttl_seconds=3600)

    assert await store.publish("user-1", make_record()) is True

    key, = pipe.hset.call_args.args
    mapping = pipe.hset.call_args.kwargs["mapping"]
    assert key == "dawn:user-1"
    assert mapping["pending"] == "1"
    assert json.loads(mapping["record"])["id"] == "record-1"
    pipe.expire.assert_called_once_with("dawn:user-1", 3600)


@pytest.mark.asyncio
async def test_redis_store_get_decodes_record():
    client = MagicMock()
    client.hgetall = AsyncMock(return_value={
        "pending": "1",
        "record": json.dumps(make_record().to_dict()),
    })
    store = RedisDawnSummaryStore(client=client)

    summary = await store.get("user-1")

    assert summary["pending"] is True
    assert summary["record"] == make_record()


@pytest.mark.asyncio
async def test_redis_store_errors_are_reported_not_raised():
    client = MagicMock()
    client.hgetall = AsyncMock(side_effect=ConnectionError("redis down"))
    client.hset = AsyncMock(side_effect=ConnectionError("redis down"))
    store = RedisDawnSummaryStore(client=client)

    assert await store.get("user-1") == {"pending": False, "record": None}
    assert await store.dismiss("user-1") is False
