"""Tests for the key-value stores and the result cache."""

import pytest
from unittest.mock import AsyncMock

from storyprompts.domain.models.prompts import Category, PromptValue
from storyprompts.infrastructure.cache import InMemoryKeyValueStore, RedisKeyValueStore, ResultCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryKeyValueStore(max_entries=3, purge_interval_seconds=60, clock=clock)


class TestInMemoryKeyValueStore:
    """Tests for the in-memory TTL store."""

    @pytest.mark.asyncio
    async def test_get_returns_stored_value(self, store):
        await store.set("k", {"v": 1}, ttl_seconds=10)
        assert await store.get("k") == {"v": 1}

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss(self, store, clock):
        """Test that an entry read after its TTL is gone."""
        await store.set("k", "value", ttl_seconds=10)
        clock.now += 10
        assert await store.get("k") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_size_cap_evicts_oldest(self, store, clock):
        """Test that inserting past the cap drops the oldest entry."""
        for key in ("a", "b", "c"):
            await store.set(key, key, ttl_seconds=100)
            clock.now += 1
        await store.set("d", "d", ttl_seconds=100)

        assert len(store) == 3
        assert await store.get("a") is None
        assert await store.get("d") == "d"

    @pytest.mark.asyncio
    async def test_rewrite_refreshes_position(self, store, clock):
        """Test that re-setting a key makes it the newest."""
        for key in ("a", "b", "c"):
            await store.set(key, key, ttl_seconds=100)
        await store.set("a", "a2", ttl_seconds=100)
        await store.set("d", "d", ttl_seconds=100)

        assert await store.get("a") == "a2"
        assert await store.get("b") is None

    @pytest.mark.asyncio
    async def test_periodic_purge_removes_expired(self, clock):
        """Test that expired entries are purged on the next write after the interval."""
        store = InMemoryKeyValueStore(max_entries=10, purge_interval_seconds=60, clock=clock)
        await store.set("short", 1, ttl_seconds=5)
        await store.set("long", 2, ttl_seconds=500)
        clock.now += 61
        await store.set("new", 3, ttl_seconds=5)

        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_incr_counts_within_window(self, store, clock):
        assert await store.incr("c", ttl_seconds=60) == 1
        assert await store.incr("c", ttl_seconds=60) == 2
        clock.now += 60
        assert await store.incr("c", ttl_seconds=60) == 1

    @pytest.mark.asyncio
    async def test_counters_are_outside_the_size_cap(self, store, clock):
        """Test that overflowing cached values leaves counters alone."""
        await store.incr("counter", ttl_seconds=60)
        for key in ("a", "b", "c", "d"):
            clock.now += 1
            await store.set(key, key, ttl_seconds=100)

        assert await store.get("a") is None
        assert await store.get("counter") == 1
        assert await store.incr("counter", ttl_seconds=60) == 2

    @pytest.mark.asyncio
    async def test_expired_counters_are_purged(self, store, clock):
        await store.incr("counter", ttl_seconds=10)
        clock.now += 61
        await store.set("a", "a", ttl_seconds=100)

        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, store):
        await store.set("a", 1, ttl_seconds=10)
        await store.set("b", 2, ttl_seconds=10)
        await store.delete("a")
        assert await store.get("a") is None
        await store.clear()
        assert len(store) == 0


class TestRedisKeyValueStore:
    """Tests for the Redis-backed store."""

    @pytest.mark.asyncio
    async def test_values_are_json_encoded_with_prefix(self):
        redis = AsyncMock()
        redis.get.return_value = '{"v": 1}'
        store = RedisKeyValueStore(redis, prefix="test")

        await store.set("k", {"v": 1}, ttl_seconds=30)
        redis.set.assert_awaited_once_with("test:k", '{"v": 1}', 30)
        assert await store.get("k") == {"v": 1}
        redis.get.assert_awaited_once_with("test:k")

    @pytest.mark.asyncio
    async def test_incr_uses_whole_second_ttl(self):
        redis = AsyncMock()
        redis.incr.return_value = 4
        store = RedisKeyValueStore(redis, prefix="test")

        assert await store.incr("c", ttl_seconds=0.5) == 4
        redis.incr.assert_awaited_once_with("test:c", 1)


class TestResultCache:
    """Tests for the prompt result cache."""

    @pytest.mark.asyncio
    async def test_round_trips_prompt_value(self, store):
        cache = ResultCache(store, ttl_seconds=100)
        prompt = PromptValue(id="generated:1", text="Tell me about your first home.", category=Category.FAMILY)

        await cache.set("fp", prompt)
        cached = await cache.get("fp")

        assert cached == prompt

    @pytest.mark.asyncio
    async def test_expires_after_ttl(self, store, clock):
        """Test that a cached prompt is served only until its TTL."""
        cache = ResultCache(store, ttl_seconds=100)
        await cache.set("fp", PromptValue(id="generated:1", text="Tell me about your first home."))
        clock.now += 99
        assert await cache.get("fp") is not None
        clock.now += 1
        assert await cache.get("fp") is None

    @pytest.mark.asyncio
    async def test_invalidate(self, store):
        cache = ResultCache(store)
        await cache.set("fp", PromptValue(id="generated:1", text="Tell me about your first home."))
        await cache.invalidate("fp")
        assert await cache.get("fp") is None
