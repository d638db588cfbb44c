"""Health check endpoint: public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import AppSettings, Cache, Store, Synchronizer
from src.services.store import StoreError

router = APIRouter(tags=["system"])
logger = logging.getLogger("logbook.health")


@router.get("/health")
async def health_check(
    settings: AppSettings, cache: Cache, store: Store, synchronizer: Synchronizer
) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also performs a lightweight store connectivity check (a point read of
    a key that never exists).
    """
    store_ok = False
    try:
        await store.get_item(settings.workouts_table, {"id": "__health__"})
        store_ok = True
    except StoreError as exc:
        logger.warning("Health check store probe failed: %s", exc)

    return {
        "status": "healthy" if store_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "store": settings.store_backend if store_ok else "unreachable",
        "cacheKeys": len(cache),
        "syncEnabled": synchronizer is not None and synchronizer.is_configured,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
