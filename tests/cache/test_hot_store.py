"""
Tests for the hot tier stores.

Redis behaviour runs against fakeredis so no server is required.
"""

import logging

import pytest

from devinsights.cache.hot import HotStore, InMemoryHotStore, RedisHotStore


class _BrokenRedis:
    """Client whose every call fails like a dropped connection."""

    async def set(self, *args, **kwargs):
        raise ConnectionError("connection refused")

    async def get(self, *args, **kwargs):
        raise ConnectionError("connection refused")

    async def delete(self, *args, **kwargs):
        raise ConnectionError("connection refused")

    async def exists(self, *args, **kwargs):
        raise ConnectionError("connection refused")

    async def ping(self):
        raise ConnectionError("connection refused")

    def scan_iter(self, *args, **kwargs):
        raise ConnectionError("connection refused")


class TestRedisHotStore:
    """RedisHotStore against an injected FakeAsyncRedis."""

    def test_satisfies_protocol(self, redis_hot: RedisHotStore) -> None:
        assert isinstance(redis_hot, HotStore)

    def test_key_layout(self, redis_hot: RedisHotStore) -> None:
        assert redis_hot.key("octocat") == "analytics:octocat"

    async def test_save_then_get(self, redis_hot: RedisHotStore, clock) -> None:
        saved_at = int(clock.now * 1000)
        result = await redis_hot.save("octocat", {"total_repos": 3})
        assert result
        assert result.success is True

        clock.advance(12.7)
        entry = await redis_hot.get("octocat")
        assert entry is not None
        assert entry.data == {"total_repos": 3}
        assert entry.cached_at == saved_at
        assert entry.cache_age_seconds == 12
        assert entry.from_cache is True

    async def test_get_miss(self, redis_hot: RedisHotStore) -> None:
        assert await redis_hot.get("nobody") is None

    async def test_ttl_applied_to_key(self, redis_hot: RedisHotStore, fake_redis) -> None:
        await redis_hot.save("octocat", {"a": 1})
        ttl = await fake_redis.ttl("analytics:octocat")
        assert 0 < ttl <= 3600

    async def test_explicit_cached_at_is_kept(self, redis_hot: RedisHotStore, clock) -> None:
        earlier = int(clock.now * 1000) - 600_000
        await redis_hot.save("octocat", {"a": 1}, cached_at=earlier)
        entry = await redis_hot.get("octocat")
        assert entry.cached_at == earlier
        assert entry.cache_age_seconds == 600

    async def test_overwrite_replaces_value(self, redis_hot: RedisHotStore) -> None:
        await redis_hot.save("octocat", {"v": 1})
        await redis_hot.save("octocat", {"v": 2})
        entry = await redis_hot.get("octocat")
        assert entry.data == {"v": 2}

    async def test_clear(self, redis_hot: RedisHotStore) -> None:
        await redis_hot.save("octocat", {"a": 1})
        assert await redis_hot.exists("octocat") is True
        assert await redis_hot.clear("octocat")
        assert await redis_hot.exists("octocat") is False
        assert await redis_hot.get("octocat") is None

    async def test_clear_absent_is_success(self, redis_hot: RedisHotStore) -> None:
        assert await redis_hot.clear("nobody")

    async def test_corrupt_entry_is_a_miss(self, redis_hot: RedisHotStore, fake_redis) -> None:
        await fake_redis.set("analytics:octocat", "{not json")
        assert await redis_hot.get("octocat") is None

    async def test_stats_counts_namespace_only(self, redis_hot: RedisHotStore, fake_redis) -> None:
        await redis_hot.save("a", 1)
        await redis_hot.save("b", 2)
        await fake_redis.set("other:c", "x")
        stats = await redis_hot.stats()
        assert stats.connected is True
        assert stats.total_cached_subjects == 2
        assert stats.ttl_seconds == 3600

    async def test_ping(self, redis_hot: RedisHotStore) -> None:
        assert await redis_hot.ping() is True


class TestRedisHotStoreDegradation:
    """Every public call degrades instead of raising when Redis is down."""

    @pytest.fixture
    def broken(self, clock) -> RedisHotStore:
        return RedisHotStore(_BrokenRedis(), clock=clock)

    async def test_save_reports_failure(self, broken: RedisHotStore) -> None:
        result = await broken.save("octocat", {"a": 1})
        assert not result
        assert "connection refused" in result.error

    async def test_get_is_a_miss(self, broken: RedisHotStore) -> None:
        assert await broken.get("octocat") is None

    async def test_clear_reports_failure(self, broken: RedisHotStore) -> None:
        assert not await broken.clear("octocat")

    async def test_exists_is_false(self, broken: RedisHotStore) -> None:
        assert await broken.exists("octocat") is False

    async def test_stats_marks_disconnected(self, broken: RedisHotStore) -> None:
        stats = await broken.stats()
        assert stats.connected is False
        assert stats.total_cached_subjects == 0
        assert stats.error

    async def test_stats_failure_logged(self, broken: RedisHotStore, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="devinsights.cache.hot"):
            await broken.stats()
        assert "Hot cache stats failed" in caplog.text

    async def test_ping_false(self, broken: RedisHotStore) -> None:
        assert await broken.ping() is False


class TestInMemoryHotStore:
    """InMemoryHotStore with a controllable clock."""

    async def test_save_then_get(self, memory_hot: InMemoryHotStore) -> None:
        await memory_hot.save("octocat", [1, 2, 3])
        entry = await memory_hot.get("octocat")
        assert entry.data == [1, 2, 3]

    async def test_expires_after_ttl(self, memory_hot: InMemoryHotStore, clock) -> None:
        await memory_hot.save("octocat", {"a": 1})
        clock.advance(3599)
        assert await memory_hot.get("octocat") is not None
        clock.advance(1)
        assert await memory_hot.get("octocat") is None
        assert await memory_hot.exists("octocat") is False

    async def test_stats_skips_expired(self, memory_hot: InMemoryHotStore, clock) -> None:
        await memory_hot.save("old", 1)
        clock.advance(3000)
        await memory_hot.save("new", 2)
        clock.advance(700)
        stats = await memory_hot.stats()
        assert stats.total_cached_subjects == 1

    async def test_key_prefix_isolation(self, clock) -> None:
        store = InMemoryHotStore(key_prefix="other:", clock=clock)
        assert store.key("octocat") == "other:octocat"
