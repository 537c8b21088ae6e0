"""
Value types shared by the hot and cold analytics cache tiers.

Both tiers store the same :class:`CacheEnvelope` and hand back a
:class:`CachedAnalytics` on a hit.  Write and delete operations report
through :class:`StoreResult` instead of raising.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

CacheTier = Literal["hot", "cold"]

# Returns epoch seconds; injectable so tests can move time.
Clock = Callable[[], float]


def cache_age_seconds(cached_at_ms: int, now_ms: int) -> int:
    """Whole seconds elapsed since *cached_at_ms*, never negative."""
    return max(0, (now_ms - cached_at_ms) // 1000)


class CacheEnvelope(BaseModel):
    """The serialised form written to either tier.

    Attributes:
        subject: Whose analytics these are (username or org id).
        data: Opaque JSON-serialisable payload supplied by the caller.
        cached_at: Epoch milliseconds recorded at write time.
    """

    subject: str
    data: Any
    cached_at: int


class CachedAnalytics(BaseModel):
    """A cache hit, annotated with where it came from and how old it is.

    Attributes:
        subject: Subject the entry belongs to.
        data: The payload exactly as it was saved.
        cached_at: Epoch milliseconds of the original save.
        cache_age_seconds: Age at read time, floored to whole seconds.
        from_cache: Always ``True``; lets merged responses advertise a hit.
        cache_tier: Tier that served the read, set by the orchestrator.
        promoted_to_hot: ``True`` when a cold hit was copied into the hot tier.
    """

    subject: str
    data: Any
    cached_at: int
    cache_age_seconds: int = 0
    from_cache: bool = True
    cache_tier: Optional[CacheTier] = None
    promoted_to_hot: bool = False

    @classmethod
    def from_envelope(cls, envelope: CacheEnvelope, now_ms: int) -> "CachedAnalytics":
        return cls(
            subject=envelope.subject,
            data=envelope.data,
            cached_at=envelope.cached_at,
            cache_age_seconds=cache_age_seconds(envelope.cached_at, now_ms),
        )

    def to_response(self) -> Dict[str, Any]:
        """Merge the payload with the cache annotations.

        Object payloads are merged at the top level; anything else is
        placed under ``data``.
        """
        body: Dict[str, Any] = dict(self.data) if isinstance(self.data, dict) else {"data": self.data}
        body.update(
            cached_at=self.cached_at,
            cache_age_seconds=self.cache_age_seconds,
            from_cache=self.from_cache,
            cache_tier=self.cache_tier,
        )
        if self.promoted_to_hot:
            body["promoted_to_hot"] = True
        return body


class StoreResult(BaseModel):
    """Outcome of a single tier write or delete.

    Truthy when the operation succeeded, so ``if await store.save(...)``
    reads naturally.
    """

    success: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls) -> "StoreResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "StoreResult":
        return cls(success=False, error=error)


class TierWriteResult(BaseModel):
    """Outcome of a dual-tier save or clear.

    Attributes:
        success: ``True`` only when both tiers succeeded.
        hot: Hot tier outcome.
        cold: Cold tier outcome.
        error: Set when the orchestrator itself failed.
    """

    success: bool
    hot: bool = False
    cold: bool = False
    error: Optional[str] = None

    @property
    def durable(self) -> bool:
        """Whether the long-lived cold copy is in place."""
        return self.cold


class HotStoreStats(BaseModel):
    total_cached_subjects: int = 0
    ttl_seconds: int
    connected: bool
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CachedSubject(BaseModel):
    """A subject present in the cold tier.

    Attributes:
        subject: The cached subject.
        last_updated: Epoch seconds of the last write, if known.
    """

    subject: str
    last_updated: Optional[int] = None


class ColdStoreStats(BaseModel):
    total_cached_subjects: int = 0
    ttl_days: int
    subjects: List[CachedSubject] = Field(default_factory=list)


class CacheStatsReport(BaseModel):
    hot: Optional[HotStoreStats] = None
    cold: Optional[ColdStoreStats] = None
    architecture: Dict[str, str] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None
