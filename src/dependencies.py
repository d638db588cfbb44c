"""Shared FastAPI dependencies injected into route handlers.

Long-lived objects are built once in the app lifespan and stored on
``app.state``; these getters hand them to routes.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.services.cache import TTLCache
from src.services.store import DocumentStore
from src.workouts.service import WorkoutReadService
from src.workouts.sync.backfill import BackfillSynchronizer

logger = logging.getLogger("logbook.dependencies")

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_read_service(request: Request) -> WorkoutReadService:
    return request.app.state.read_service


def get_synchronizer(request: Request) -> BackfillSynchronizer | None:
    """The synchronizer, or None when the sync config failed to load at startup."""
    return request.app.state.synchronizer


async def require_admin(
    request: Request, settings: Annotated[Settings, Depends(get_settings)]
) -> None:
    """Allow requests addressed to localhost, or presenting the shared site key.

    The key is accepted from the ``password`` query parameter or the
    ``X-Site-Key`` header.
    """
    host = request.headers.get("host", "")
    if host.startswith(_LOCAL_HOSTS):
        logger.info("Localhost request, skipping site key check")
        return
    supplied = request.query_params.get("password") or request.headers.get("x-site-key")
    if not settings.site_key or supplied != settings.site_key:
        raise HTTPException(status_code=401, detail="Unauthorized")


# Annotated shortcuts for route signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
Cache = Annotated[TTLCache, Depends(get_cache)]
Store = Annotated[DocumentStore, Depends(get_store)]
ReadService = Annotated[WorkoutReadService, Depends(get_read_service)]
Synchronizer = Annotated[BackfillSynchronizer | None, Depends(get_synchronizer)]
AdminOnly = Depends(require_admin)
