"""Build the cache tiers selected by configuration.

Backend choice happens here, once per process; the stores themselves
never look at settings or the environment.
"""

import logging
from pathlib import Path

from devinsights.cache.cold import ColdStore, DynamoColdStore, FileColdStore
from devinsights.cache.hot import HotStore, InMemoryHotStore, RedisHotStore
from devinsights.cache.multi_tier import MultiTierCache
from devinsights.config import Settings
from devinsights.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def build_hot_store(settings: Settings) -> HotStore:
    backend = settings.hot_store_backend
    if backend == "redis":
        logger.info("Hot tier: Redis at %s", settings.redis_url)
        return RedisHotStore.from_url(
            settings.redis_url,
            ttl_seconds=settings.hot_cache_ttl_seconds,
            key_prefix=settings.hot_cache_key_prefix,
        )
    if backend == "memory":
        logger.info("Hot tier: in-memory")
        return InMemoryHotStore(
            ttl_seconds=settings.hot_cache_ttl_seconds,
            key_prefix=settings.hot_cache_key_prefix,
        )
    raise ConfigurationError(f"Unknown hot store backend: {backend!r}")


def build_cold_store(settings: Settings) -> ColdStore:
    backend = settings.cold_store_backend
    if backend == "dynamodb":
        return DynamoColdStore.from_table_name(
            settings.dynamodb_table_name,
            region_name=settings.aws_region,
            endpoint_url=settings.dynamodb_endpoint_url,
            ttl_days=settings.cold_cache_ttl_days,
            category=settings.cold_cache_category,
        )
    if backend == "file":
        logger.info("Cold tier: local files in %s", settings.cold_store_dir)
        return FileColdStore(
            Path(settings.cold_store_dir),
            ttl_days=settings.cold_cache_ttl_days,
            category=settings.cold_cache_category,
        )
    raise ConfigurationError(f"Unknown cold store backend: {backend!r}")


def build_cache(settings: Settings) -> MultiTierCache:
    """Construct the process-wide :class:`MultiTierCache`."""
    return MultiTierCache(hot=build_hot_store(settings), cold=build_cold_store(settings))
