"""
Two-tier analytics cache: hot (short TTL) in front of cold (30 days).

Flow on read::

    hot hit  -> return (cold never consulted)
    hot miss -> cold hit  -> promote into hot, return
             -> cold miss -> None (caller fetches fresh data)

Writes and clears go to both tiers concurrently and wait for both.
No method raises; failures surface as ``None`` or a
:class:`TierWriteResult` with ``success=False``.

There is no per-subject locking.  Two concurrent saves for the same
subject resolve as last-write-wins inside each tier and may leave the
tiers disagreeing until the next promotion or hot expiry.
"""

import asyncio
import logging
import time
from typing import Any, Optional, Set

from devinsights.cache.cold import ColdStore
from devinsights.cache.hot import HotStore
from devinsights.cache.models import (
    CachedAnalytics,
    CacheStatsReport,
    Clock,
    ColdStoreStats,
    TierWriteResult,
)

logger = logging.getLogger(__name__)

STATS_SUBJECT_SAMPLE = 10


class MultiTierCache:
    """Orchestrates a :class:`HotStore` and a :class:`ColdStore`.

    Both stores are process-wide clients built once at startup and
    injected here; this class holds no connection state of its own.

    Args:
        hot: Short-TTL tier consulted first.
        cold: Durable tier consulted on a hot miss.
        clock: Epoch-seconds source used to stamp saves.
    """

    def __init__(self, hot: HotStore, cold: ColdStore, clock: Clock = time.time) -> None:
        self.hot = hot
        self.cold = cold
        self._clock = clock
        self._pending: Set["asyncio.Task[TierWriteResult]"] = set()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def get_analytics(self, subject: str) -> Optional[CachedAnalytics]:
        """Look up *subject*, hot tier first, promoting cold hits.

        Args:
            subject: Username or organisation id.

        Returns:
            The cached entry tagged with ``cache_tier``, or ``None`` on a
            full miss or any internal failure.
        """
        try:
            entry = await self.hot.get(subject)
            if entry is not None:
                logger.info(
                    "Hot tier hit",
                    extra={"subject": subject, "cache_age_seconds": entry.cache_age_seconds},
                )
                return entry.model_copy(update={"cache_tier": "hot"})

            entry = await self.cold.get(subject)
            if entry is None:
                logger.info("Full cache miss", extra={"subject": subject})
                return None

            promoted = await self.hot.save(subject, entry.data, cached_at=entry.cached_at)
            if not promoted:
                logger.warning(
                    "Promotion to hot tier failed",
                    extra={"subject": subject, "error": promoted.error},
                )
            logger.info(
                "Cold tier hit",
                extra={"subject": subject, "cache_age_seconds": entry.cache_age_seconds},
            )
            return entry.model_copy(update={"cache_tier": "cold", "promoted_to_hot": True})
        except Exception:
            logger.exception("Multi-tier get failed for %s", subject)
            return None

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def save_analytics(self, subject: str, data: Any) -> TierWriteResult:
        """Write *data* to both tiers concurrently with one shared timestamp.

        ``success`` requires both tiers.  A cold-only success is a soft
        degradation: the next read promotes it, so callers need not retry.
        """
        try:
            cached_at = int(self._clock() * 1000)
            hot_result, cold_result = await asyncio.gather(
                self.hot.save(subject, data, cached_at=cached_at),
                self.cold.save(subject, data, cached_at=cached_at),
            )
        except Exception as exc:
            logger.exception("Multi-tier save failed for %s", subject)
            return TierWriteResult(success=False, error=str(exc))

        result = TierWriteResult(
            success=bool(hot_result) and bool(cold_result),
            hot=bool(hot_result),
            cold=bool(cold_result),
        )
        if result.success:
            logger.info("Saved to both tiers", extra={"subject": subject})
        else:
            logger.warning(
                "Partial cache save",
                extra={"subject": subject, "hot": result.hot, "cold": result.cold},
            )
        return result

    def schedule_save(self, subject: str, data: Any) -> "asyncio.Task[TierWriteResult]":
        """Start a save without waiting for it.

        The request path returns immediately; a completion callback logs
        the outcome.  Outstanding saves are awaited by :meth:`drain`.
        Must be called from a running event loop.
        """
        task = asyncio.create_task(self.save_analytics(subject, data))
        self._pending.add(task)
        task.add_done_callback(self._on_save_done)
        return task

    def _on_save_done(self, task: "asyncio.Task[TierWriteResult]") -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Background cache save cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background cache save raised: %s", exc)
            return
        result = task.result()
        if not result.success:
            logger.warning(
                "Background cache save incomplete",
                extra={"hot": result.hot, "cold": result.cold, "error": result.error},
            )

    @property
    def pending_saves(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled save to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def clear_analytics(self, subject: str) -> TierWriteResult:
        """Delete *subject* from both tiers concurrently."""
        try:
            hot_result, cold_result = await asyncio.gather(
                self.hot.clear(subject),
                self.cold.delete(subject),
            )
        except Exception as exc:
            logger.exception("Multi-tier clear failed for %s", subject)
            return TierWriteResult(success=False, error=str(exc))

        result = TierWriteResult(
            success=bool(hot_result) and bool(cold_result),
            hot=bool(hot_result),
            cold=bool(cold_result),
        )
        if result.success:
            logger.info("Cleared both tiers", extra={"subject": subject})
        else:
            logger.warning(
                "Partial cache clear",
                extra={"subject": subject, "hot": result.hot, "cold": result.cold},
            )
        return result

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def get_stats(self) -> CacheStatsReport:
        """Combined view of both tiers.  Never used for correctness."""
        try:
            hot_stats, subjects = await asyncio.gather(
                self.hot.stats(),
                self.cold.list_subjects(),
            )
        except Exception as exc:
            logger.exception("Cache stats collection failed")
            return CacheStatsReport(error=str(exc))

        return CacheStatsReport(
            hot=hot_stats,
            cold=ColdStoreStats(
                total_cached_subjects=len(subjects),
                ttl_days=self.cold.ttl_days,
                subjects=subjects[:STATS_SUBJECT_SAMPLE],
            ),
            architecture={
                "tier_1": f"Hot cache ({self.hot.ttl_seconds // 60} minutes)",
                "tier_2": f"Cold storage ({self.cold.ttl_days} days)",
                "strategy": "hot -> cold -> GitHub API",
            },
        )

    async def close(self) -> None:
        """Drain background saves and release the hot-tier client."""
        await self.drain()
        await self.hot.close()
