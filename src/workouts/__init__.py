"""Logbook workout ingestion and reads.

Hevy is the source of truth; workouts are copied into the document store
with derived metrics attached, then served through the shared read cache.

Subpackages:
    sync/  — Backfill synchronizer, fire-and-forget trigger, dedup keys

Core modules:
    base          — Typed workout, exercise and set records parsed from Hevy
    metrics       — Derived exercise and workout metrics (Epley 1RM, volume)
    hevy          — Async Hevy API client
    queries       — Store reads behind the cached endpoints
    service       — WorkoutReadService: cached reads with sync-on-miss
    config_loader — Load/validate/hot-reload sync_config.yaml
"""

from src.workouts.base import ExerciseRecord, SetKind, SetRecord, WorkoutRecord
from src.workouts.config_loader import SyncConfig, get_sync_config

__all__ = [
    "WorkoutRecord",
    "ExerciseRecord",
    "SetRecord",
    "SetKind",
    "SyncConfig",
    "get_sync_config",
]
