"""Developer cache admin: inspect and clear the shared read cache.

Localhost requests pass freely; everyone else needs the site key.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from src.dependencies import AdminOnly, Cache
from src.models.system import CacheClearRead, CacheClearRequest, CacheStatsRead

router = APIRouter(prefix="/dev", tags=["system"], dependencies=[AdminOnly])
logger = logging.getLogger("logbook.routers.cache_admin")


@router.get("/cache", response_model=CacheStatsRead)
async def cache_stats(cache: Cache) -> Any:
    return cache.stats().to_dict()


@router.post("/cache", response_model=CacheClearRead)
async def clear_cache(cache: Cache, body: CacheClearRequest | None = None) -> Any:
    """Clear one key, a ``*`` pattern, or (with no key) the whole cache."""
    key = body.key if body else None
    removed = cache.invalidate(key)
    logger.info("Cache cleared via admin endpoint: %s (%d removed)", key or "all", removed)
    return {"cleared": key or "all", "removed": removed}
