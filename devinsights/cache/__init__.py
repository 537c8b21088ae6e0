"""Two-tier analytics cache (hot / cold)."""

from devinsights.cache.cold import ColdStore, DynamoColdStore, FileColdStore
from devinsights.cache.hot import HotStore, InMemoryHotStore, RedisHotStore
from devinsights.cache.models import CachedAnalytics, CacheStatsReport, StoreResult, TierWriteResult
from devinsights.cache.multi_tier import MultiTierCache

__all__ = [
    "CachedAnalytics",
    "CacheStatsReport",
    "ColdStore",
    "DynamoColdStore",
    "FileColdStore",
    "HotStore",
    "InMemoryHotStore",
    "MultiTierCache",
    "RedisHotStore",
    "StoreResult",
    "TierWriteResult",
]
