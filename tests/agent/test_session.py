"""Tests for session stores (in-memory and Redis) with a controllable clock."""
import json
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from project_chat.agent import MemorySessionStore, RedisSessionStore, SessionData


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_session_data_validates_times_and_count():
    with pytest.raises(ValidationError):
        SessionData(session_id="s", created_at=10, last_active_at=5)
    with pytest.raises(ValidationError):
        SessionData(session_id="s", created_at=1, last_active_at=1, message_count=-1)
    assert SessionData.new("s", now=5).last_active_at == 5


@pytest.mark.asyncio
async def test_memory_store_round_trip_refreshes_last_active():
    clock = FakeClock()
    store = MemorySessionStore(max_age_seconds=60, clock=clock)
    data = SessionData.new("s1", now=clock())
    data.history = [{"role": "user", "content": "hi"}]

    clock.now += 30
    await store.set("s1", data)
    got = await store.get("s1")

    assert got.history == [{"role": "user", "content": "hi"}]
    assert got.last_active_at == clock.now


@pytest.mark.asyncio
async def test_memory_store_expires_on_read_and_deletes():
    clock = FakeClock()
    store = MemorySessionStore(max_age_seconds=60, clock=clock)
    await store.set("s1", SessionData.new("s1", now=clock()))

    clock.now += 60
    assert await store.get("s1") is not None

    clock.now = 1_000.0 + 60.001
    assert await store.get("s1") is None
    assert len(store) == 0
    assert await store.get("s1") is None


@pytest.mark.asyncio
async def test_memory_store_keeps_unread_expired_entries():
    clock = FakeClock()
    store = MemorySessionStore(max_age_seconds=1, clock=clock)
    await store.set("s1", SessionData.new("s1", now=clock()))
    clock.now += 100
    # No background eviction
    assert len(store) == 1


@pytest.mark.asyncio
async def test_memory_store_returns_copies():
    store = MemorySessionStore()
    await store.set("s1", SessionData.new("s1"))
    got = await store.get("s1")
    got.message_count = 99
    assert (await store.get("s1")).message_count == 0


@pytest.mark.asyncio
async def test_memory_store_delete_missing_is_noop():
    store = MemorySessionStore()
    await store.delete("never-existed")


@pytest.fixture
def redis():
    r = AsyncMock()
    r.get.return_value = None
    return r


@pytest.mark.asyncio
async def test_redis_store_writes_json_with_ttl(redis):
    clock = FakeClock()
    store = RedisSessionStore(redis, max_age_seconds=120, clock=clock)
    await store.set("s1", SessionData.new("s1", now=500.0))

    key, raw = redis.set.call_args.args
    assert key == "project_chat:session:s1"
    assert redis.set.call_args.kwargs == {"ex": 120}
    assert json.loads(raw)["last_active_at"] == clock.now


@pytest.mark.asyncio
async def test_redis_store_get_and_lazy_expiry(redis):
    clock = FakeClock()
    store = RedisSessionStore(redis, max_age_seconds=120, clock=clock)
    redis.get.return_value = SessionData.new("s1", now=clock()).model_dump_json()

    assert (await store.get("s1")).session_id == "s1"

    clock.now += 121
    assert await store.get("s1") is None
    redis.delete.assert_awaited_with("project_chat:session:s1")


@pytest.mark.asyncio
async def test_redis_store_discards_unreadable_entries(redis):
    redis.get.return_value = "{not json"
    store = RedisSessionStore(redis)
    assert await store.get("s1") is None
    redis.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_store_missing(redis):
    assert await RedisSessionStore(redis).get("nope") is None
