"""
Cold tier of the analytics cache: durable storage with a long expiry.

Items are keyed by ``(subject, category)`` and carry an absolute
``expires_at`` (epoch seconds).  Reads treat an item past its
``expires_at`` as absent even when the backend has not evicted it yet;
physical removal on read is best effort only.

Item layout::

    subject      partition key
    category     sort key (fixed, e.g. "dashboard")
    data         payload as a JSON string
    cached_at    epoch milliseconds of the write
    created_at   epoch seconds
    updated_at   epoch seconds
    expires_at   epoch seconds (also the DynamoDB TTL attribute)
"""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable
from urllib.parse import quote, unquote

from devinsights.cache.models import CacheEnvelope, CachedAnalytics, CachedSubject, Clock, StoreResult

logger = logging.getLogger(__name__)

DEFAULT_COLD_TTL_DAYS = 30
DEFAULT_CATEGORY = "dashboard"
SECONDS_PER_DAY = 24 * 60 * 60


@runtime_checkable
class ColdStore(Protocol):
    """Protocol for cold-tier backends."""

    ttl_days: int

    async def save(self, subject: str, data: Any, *, cached_at: Optional[int] = None) -> StoreResult:
        ...

    async def get(self, subject: str) -> Optional[CachedAnalytics]:
        ...

    async def delete(self, subject: str) -> StoreResult:
        ...

    async def list_subjects(self) -> List[CachedSubject]:
        ...


class _BaseColdStore:
    """Item construction, lazy expiry and error policy shared by backends.

    Subclasses implement ``_put_item``, ``_get_item``, ``_delete_item``
    and ``_scan_items``; those may raise freely.
    """

    def __init__(
        self,
        ttl_days: int = DEFAULT_COLD_TTL_DAYS,
        category: str = DEFAULT_CATEGORY,
        clock: Clock = time.time,
    ) -> None:
        self.ttl_days = ttl_days
        self._category = category
        self._clock = clock

    def build_item(self, subject: str, data: Any, cached_at: Optional[int] = None) -> Dict[str, Any]:
        now = self._clock()
        now_s = int(now)
        return {
            "subject": subject,
            "category": self._category,
            "data": json.dumps(data),
            "cached_at": cached_at if cached_at is not None else int(now * 1000),
            "created_at": now_s,
            "updated_at": now_s,
            "expires_at": now_s + self.ttl_days * SECONDS_PER_DAY,
        }

    async def save(self, subject: str, data: Any, *, cached_at: Optional[int] = None) -> StoreResult:
        try:
            item = self.build_item(subject, data, cached_at)
            await self._put_item(item)
        except Exception as exc:
            logger.warning(
                "Cold cache save failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return StoreResult.failed(str(exc))
        logger.debug(
            "Cold cache set",
            extra={"subject": subject, "expires_at": item["expires_at"]},
        )
        return StoreResult.ok()

    async def get(self, subject: str) -> Optional[CachedAnalytics]:
        try:
            item = await self._get_item(subject)
        except Exception as exc:
            logger.warning(
                "Cold cache get failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return None

        if item is None:
            logger.debug("Cold cache miss", extra={"subject": subject})
            return None

        now = self._clock()
        try:
            expires_at = item.get("expires_at")
            expired = expires_at is not None and int(expires_at) <= int(now)
            envelope = None
            if not expired:
                envelope = CacheEnvelope(
                    subject=subject,
                    data=json.loads(item["data"]),
                    cached_at=int(item["cached_at"]),
                )
        except Exception as exc:
            logger.warning(
                "Cold cache item deserialize failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return None

        if expired:
            logger.info("Cold cache entry expired", extra={"subject": subject})
            try:
                await self._delete_item(subject)
            except Exception as exc:
                logger.warning(
                    "Expired cold entry cleanup failed",
                    extra={"subject": subject, "error": str(exc)},
                )
            return None

        entry = CachedAnalytics.from_envelope(envelope, int(now * 1000))
        logger.debug(
            "Cold cache hit",
            extra={"subject": subject, "cache_age_seconds": entry.cache_age_seconds},
        )
        return entry

    async def delete(self, subject: str) -> StoreResult:
        try:
            await self._delete_item(subject)
        except Exception as exc:
            logger.warning(
                "Cold cache delete failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return StoreResult.failed(str(exc))
        logger.info("Cold cache entry deleted", extra={"subject": subject})
        return StoreResult.ok()

    async def list_subjects(self) -> List[CachedSubject]:
        """Enumerate stored subjects.  Each call is a fresh scan."""
        try:
            items = await self._scan_items()
        except Exception as exc:
            logger.warning("Cold cache scan failed", extra={"error": str(exc)})
            return []
        subjects = []
        for item in items:
            try:
                updated = item.get("updated_at")
                subjects.append(
                    CachedSubject(
                        subject=str(item["subject"]),
                        last_updated=int(updated) if updated is not None else None,
                    )
                )
            except Exception as exc:
                logger.warning("Skipping malformed cold item", extra={"error": str(exc)})
        return subjects

    async def _put_item(self, item: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def _get_item(self, subject: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def _delete_item(self, subject: str) -> None:
        raise NotImplementedError

    async def _scan_items(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


class DynamoColdStore(_BaseColdStore):
    """Cold tier backed by a DynamoDB table (boto3 resource API).

    boto3 is blocking, so each call runs in a worker thread.  Numbers
    come back as ``Decimal``; the base class coerces the ones it reads.

    Args:
        table: A ``boto3.resource("dynamodb").Table`` instance.
        ttl_days: Lifetime written into ``expires_at``.
        category: Sort-key value shared by all analytics items.
    """

    def __init__(
        self,
        table: Any,
        ttl_days: int = DEFAULT_COLD_TTL_DAYS,
        category: str = DEFAULT_CATEGORY,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(ttl_days=ttl_days, category=category, clock=clock)
        self._table = table

    @classmethod
    def from_table_name(
        cls,
        table_name: str,
        region_name: str,
        endpoint_url: Optional[str] = None,
        **kwargs: Any,
    ) -> "DynamoColdStore":
        import boto3

        resource = boto3.resource("dynamodb", region_name=region_name, endpoint_url=endpoint_url)
        logger.info("DynamoDB cold store using table %s", table_name)
        return cls(resource.Table(table_name), **kwargs)

    def _key(self, subject: str) -> Dict[str, str]:
        return {"subject": subject, "category": self._category}

    async def _put_item(self, item: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._table.put_item, Item=item)

    async def _get_item(self, subject: str) -> Optional[Dict[str, Any]]:
        response = await asyncio.to_thread(self._table.get_item, Key=self._key(subject))
        return response.get("Item")

    async def _delete_item(self, subject: str) -> None:
        await asyncio.to_thread(self._table.delete_item, Key=self._key(subject))

    async def _scan_items(self) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "ProjectionExpression": "#s, #c, updated_at",
            "ExpressionAttributeNames": {"#s": "subject", "#c": "category"},
        }
        items: List[Dict[str, Any]] = []
        while True:
            response = await asyncio.to_thread(self._table.scan, **params)
            items.extend(
                item for item in response.get("Items", [])
                if item.get("category") == self._category
            )
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            params["ExclusiveStartKey"] = last_key


class FileColdStore(_BaseColdStore):
    """Cold tier stored as one JSON file per subject in a directory.

    Stands in for DynamoDB during local development.

    Args:
        directory: Where item files live; created if missing.
    """

    def __init__(
        self,
        directory: Path,
        ttl_days: int = DEFAULT_COLD_TTL_DAYS,
        category: str = DEFAULT_CATEGORY,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(ttl_days=ttl_days, category=category, clock=clock)
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, subject: str) -> Path:
        return self._dir / f"{quote(subject, safe='')}.json"

    def _read(self, subject: str) -> Optional[Dict[str, Any]]:
        path = self.path_for(subject)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)

    def _write(self, item: Dict[str, Any]) -> None:
        path = self.path_for(item["subject"])
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(item, fh, indent=2)
        tmp.replace(path)

    def _scan(self) -> List[Dict[str, Any]]:
        items = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    item = json.load(fh)
            except (OSError, ValueError) as exc:
                logger.warning("Skipping unreadable cold item %s: %s", path.name, exc)
                continue
            if isinstance(item, dict):
                item.setdefault("subject", unquote(path.stem))
            items.append(item)
        return items

    async def _put_item(self, item: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, item)

    async def _get_item(self, subject: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read, subject)

    async def _delete_item(self, subject: str) -> None:
        await asyncio.to_thread(self.path_for(subject).unlink, missing_ok=True)

    async def _scan_items(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._scan)
