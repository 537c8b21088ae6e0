"""
Hot tier of the analytics cache: short-TTL key/value storage.

Keys: ``{prefix}:{subject}`` holding a JSON :class:`CacheEnvelope`.
Expiry is enforced by the store itself (``SET ... EX`` on Redis, a
per-key deadline in memory); this layer never tracks it.

Every public method degrades to a safe default on error: a miss on
read, a failed :class:`StoreResult` on write.  Nothing propagates.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from devinsights.cache.models import CacheEnvelope, CachedAnalytics, Clock, HotStoreStats, StoreResult

logger = logging.getLogger(__name__)

DEFAULT_HOT_TTL_SECONDS = 3600
DEFAULT_KEY_PREFIX = "analytics"


@runtime_checkable
class HotStore(Protocol):
    """Protocol for hot-tier backends."""

    ttl_seconds: int

    async def save(self, subject: str, data: Any, *, cached_at: Optional[int] = None) -> StoreResult:
        """Store *data* for *subject*; *cached_at* overrides the write time."""
        ...

    async def get(self, subject: str) -> Optional[CachedAnalytics]:
        """Return the entry for *subject*, or ``None`` on a miss or error."""
        ...

    async def clear(self, subject: str) -> StoreResult:
        """Delete *subject*; absence counts as success."""
        ...

    async def exists(self, subject: str) -> bool:
        """Check presence without deserialising."""
        ...

    async def stats(self) -> HotStoreStats:
        """Diagnostic counts for the namespace."""
        ...

    async def close(self) -> None:
        ...


class _BaseHotStore:
    """Serialisation, age accounting and error policy shared by backends.

    Subclasses implement the raw key operations ``_set``, ``_get``,
    ``_delete``, ``_exists`` and ``_keys``; those may raise freely.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_HOT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Clock = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._key_prefix = key_prefix.rstrip(":")
        self._clock = clock

    def key(self, subject: str) -> str:
        """Return the full key for a subject."""
        return f"{self._key_prefix}:{subject}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def save(self, subject: str, data: Any, *, cached_at: Optional[int] = None) -> StoreResult:
        envelope = CacheEnvelope(
            subject=subject,
            data=data,
            cached_at=cached_at if cached_at is not None else self._now_ms(),
        )
        try:
            await self._set(self.key(subject), envelope.model_dump_json(), self.ttl_seconds)
        except Exception as exc:
            logger.warning(
                "Hot cache save failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return StoreResult.failed(str(exc))
        logger.debug(
            "Hot cache set",
            extra={"subject": subject, "ttl_seconds": self.ttl_seconds},
        )
        return StoreResult.ok()

    async def get(self, subject: str) -> Optional[CachedAnalytics]:
        try:
            raw = await self._get(self.key(subject))
        except Exception as exc:
            logger.warning(
                "Hot cache get failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return None

        if raw is None:
            logger.debug("Hot cache miss", extra={"subject": subject})
            return None

        try:
            envelope = CacheEnvelope.model_validate_json(raw)
        except Exception as exc:
            logger.warning(
                "Hot cache entry deserialize failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return None

        entry = CachedAnalytics.from_envelope(envelope, self._now_ms())
        logger.debug(
            "Hot cache hit",
            extra={"subject": subject, "cache_age_seconds": entry.cache_age_seconds},
        )
        return entry

    async def clear(self, subject: str) -> StoreResult:
        try:
            await self._delete(self.key(subject))
        except Exception as exc:
            logger.warning(
                "Hot cache delete failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return StoreResult.failed(str(exc))
        logger.info("Hot cache entry cleared", extra={"subject": subject})
        return StoreResult.ok()

    async def exists(self, subject: str) -> bool:
        try:
            return await self._exists(self.key(subject))
        except Exception as exc:
            logger.warning(
                "Hot cache exists check failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return False

    async def stats(self) -> HotStoreStats:
        try:
            keys = await self._keys(f"{self._key_prefix}:*")
        except Exception as exc:
            logger.warning("Hot cache stats failed", extra={"error": str(exc)})
            return HotStoreStats(
                ttl_seconds=self.ttl_seconds,
                connected=False,
                error=str(exc),
            )
        return HotStoreStats(
            total_cached_subjects=len(keys),
            ttl_seconds=self.ttl_seconds,
            connected=True,
        )

    async def close(self) -> None:
        return None

    async def _set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    async def _get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def _delete(self, key: str) -> None:
        raise NotImplementedError

    async def _exists(self, key: str) -> bool:
        raise NotImplementedError

    async def _keys(self, pattern: str) -> List[str]:
        raise NotImplementedError


class RedisHotStore(_BaseHotStore):
    """Hot tier backed by Redis (``redis.asyncio``).

    The client is process-wide and owned by the caller unless created
    through :meth:`from_url`.

    Args:
        client: An async Redis client created with ``decode_responses=True``.
        ttl_seconds: Expiry applied to every write.
        key_prefix: Namespace for all keys.
    """

    def __init__(
        self,
        client: Any,
        ttl_seconds: int = DEFAULT_HOT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Clock = time.time,
        owns_client: bool = False,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, key_prefix=key_prefix, clock=clock)
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> "RedisHotStore":
        import redis.asyncio as aioredis

        client = aioredis.from_url(redis_url, decode_responses=True)
        return cls(client, owns_client=True, **kwargs)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except Exception:
            logger.warning("Redis ping failed")
            return False

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def _get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def _delete(self, key: str) -> None:
        await self._client.delete(key)

    async def _exists(self, key: str) -> bool:
        return await self._client.exists(key) == 1

    async def _keys(self, pattern: str) -> List[str]:
        return [k async for k in self._client.scan_iter(match=pattern)]


class InMemoryHotStore(_BaseHotStore):
    """In-process hot tier for local development and tests.

    Expired keys are dropped lazily when touched.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_HOT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, key_prefix=key_prefix, clock=clock)
        self._store: Dict[str, Tuple[str, float]] = {}

    async def ping(self) -> bool:
        return True

    def _live(self, key: str) -> Optional[str]:
        item = self._store.get(key)
        if item is None:
            return None
        value, deadline = item
        if self._clock() >= deadline:
            del self._store[key]
            return None
        return value

    async def _set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = (value, self._clock() + ttl_seconds)

    async def _get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def _delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def _exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def _keys(self, pattern: str) -> List[str]:
        prefix = pattern.rstrip("*")
        return [k for k in list(self._store) if k.startswith(prefix) and self._live(k) is not None]
