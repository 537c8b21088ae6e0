"""Shared fixtures: a controllable clock and cache tiers with no external services."""

import os

import pytest

# Keep tests on the local backends regardless of the developer's .env
os.environ.setdefault("HOT_STORE_BACKEND", "memory")
os.environ.setdefault("COLD_STORE_BACKEND", "file")

from devinsights.cache.cold import FileColdStore  # noqa: E402
from devinsights.cache.hot import InMemoryHotStore, RedisHotStore  # noqa: E402
from devinsights.cache.multi_tier import MultiTierCache  # noqa: E402
from devinsights.config import reset_settings  # noqa: E402

T0 = 1_700_000_000.0


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: float = T0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _clean_settings():
    """Reset the settings singleton before and after each test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis():
    import fakeredis

    return fakeredis.FakeAsyncRedis(decode_responses=True)


@pytest.fixture
def redis_hot(fake_redis, clock) -> RedisHotStore:
    return RedisHotStore(fake_redis, ttl_seconds=3600, clock=clock)


@pytest.fixture
def memory_hot(clock) -> InMemoryHotStore:
    return InMemoryHotStore(ttl_seconds=3600, clock=clock)


@pytest.fixture
def file_cold(tmp_path, clock) -> FileColdStore:
    return FileColdStore(tmp_path / "cold", ttl_days=30, clock=clock)


@pytest.fixture
def cache(memory_hot, file_cold, clock) -> MultiTierCache:
    return MultiTierCache(hot=memory_hot, cold=file_cold, clock=clock)
