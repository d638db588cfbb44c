"""Logbook API: FastAPI application entry point.

Run locally:
    STORE_BACKEND=memory uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI

from src.config import Settings, get_settings
from src.routers import cache_admin, health, workouts
from src.services.cache import TTLCache
from src.services.dynamo import DynamoDocumentStore, create_dynamo_resource
from src.services.store import DocumentStore, InMemoryDocumentStore
from src.workouts.config_loader import (
    BackfillConfig,
    CacheConfig,
    ConfigValidationError,
    SyncConfig,
    get_sync_config,
)
from src.workouts.hevy import HevyClient
from src.workouts.service import WorkoutReadService
from src.workouts.sync.backfill import BackfillSynchronizer
from src.workouts.sync.trigger import SynchronizationTrigger

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("logbook")


def _build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "memory":
        logger.warning("Using the in-memory store; data is lost on restart")
        return InMemoryDocumentStore()
    return DynamoDocumentStore(create_dynamo_resource(settings))


def _load_sync_config(settings: Settings) -> SyncConfig | None:
    path = Path(settings.sync_config_path) if settings.sync_config_path else None
    try:
        return get_sync_config(path)
    except (ConfigValidationError, FileNotFoundError) as exc:
        logger.error("Sync config unavailable, background sync disabled: %s", exc)
        return None


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared cache, store and sync machinery; drain them on shutdown."""
    settings = get_settings()
    logger.info(
        "Starting Logbook API v%s [%s]",
        settings.app_version,
        settings.environment,
    )

    sync_config = _load_sync_config(settings)
    # Reads keep working on default TTLs; only syncing is switched off
    read_config = sync_config or SyncConfig(
        version="defaults",
        cache=CacheConfig(),
        trigger_patterns=[],
        backfill=BackfillConfig(),
    )

    cache = TTLCache(
        default_ttl=read_config.cache.default_ttl_seconds,
        check_period=read_config.cache.check_period_seconds,
    )
    store = _build_store(settings)

    synchronizer: BackfillSynchronizer | None = None
    trigger: SynchronizationTrigger | None = None
    if sync_config is not None:
        hevy = HevyClient(
            timeout=sync_config.backfill.request_timeout_seconds, settings=settings
        )
        if not hevy.is_configured:
            logger.warning("HEVY_API_KEY not set; backfill runs will fail until it is")
        synchronizer = BackfillSynchronizer(
            store, hevy, cache, sync_config.backfill, settings=settings
        )
        trigger = SynchronizationTrigger(synchronizer)

    app.state.cache = cache
    app.state.store = store
    app.state.synchronizer = synchronizer
    app.state.trigger = trigger
    app.state.read_service = WorkoutReadService(
        cache, store, trigger, read_config, settings=settings
    )

    yield

    await cache.drain()
    if trigger is not None:
        await trigger.wait_idle()
    logger.info("Logbook API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Logbook API",
        description=(
            "Personal workout log: Hevy workouts mirrored into DynamoDB, "
            "served through a read-through cache."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ---------- Health check (always at /health) ----------
    app.include_router(health.router)

    # ---------- API routes ----------
    app.include_router(workouts.router, prefix="/api")
    app.include_router(cache_admin.router, prefix="/api")

    return app


app = create_app()
