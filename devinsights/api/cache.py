"""Cache administration routes.

GET    /api/cache/stats        sizes and TTLs of both tiers
DELETE /api/cache/{username}   force refresh: drop a subject from both tiers
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from devinsights.api.deps import get_cache
from devinsights.cache.multi_tier import MultiTierCache

router = APIRouter()


@router.get("/stats")
async def cache_stats(cache: MultiTierCache = Depends(get_cache)):
    stats = await cache.get_stats()
    return {
        "success": stats.error is None,
        "cache_stats": stats.model_dump(mode="json"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.delete("/{username}")
async def clear_user_cache(username: str, cache: MultiTierCache = Depends(get_cache)):
    result = await cache.clear_analytics(username)
    message = f"Cache cleared for {username}" if result.success else f"Cache partially cleared for {username}"
    return {
        "success": result.success,
        "message": message,
        "username": username,
        "tiers": {"hot": result.hot, "cold": result.cold},
    }
