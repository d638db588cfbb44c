"""Cached workout reads.

``WorkoutReadService`` is the only way routers read workouts: every method
goes through ``TTLCache.read_through`` with a key from ``generate_cache_key``.
For keys listed in the sync config's ``sync_triggers`` a cache miss also
fires a background backfill, so a cold first page or stats read is what
pulls new workouts in from Hevy.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from src.config import Settings, get_settings
from src.services.cache import TTLCache, generate_cache_key
from src.services.store import DocumentStore
from src.workouts import queries
from src.workouts.config_loader import SyncConfig
from src.workouts.sync.trigger import SynchronizationTrigger

logger = logging.getLogger("logbook.workouts.service")


class WorkoutReadService:
    """Read-through access to workouts, exercises and aggregate stats."""

    def __init__(
        self,
        cache: TTLCache,
        store: DocumentStore,
        trigger: SynchronizationTrigger | None,
        config: SyncConfig,
        settings: Settings | None = None,
    ) -> None:
        s = settings or get_settings()
        self._cache = cache
        self._store = store
        self._trigger = trigger
        self._config = config
        self._workouts_table = s.workouts_table
        self._exercises_table = s.exercises_table

    def _hook_for(self, key: str) -> Callable[[], Any] | None:
        if self._trigger is not None and self._config.triggers_sync(key):
            return self._trigger.fire_and_forget
        return None

    async def _read(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
    ) -> Any:
        return await self._cache.read_through(
            key,
            fetch_fn,
            ttl=ttl if ttl is not None else self._config.cache.default_ttl_seconds,
            on_miss=self._hook_for(key),
        )

    async def list_workouts(self, page: int = 1, page_size: int = 10) -> dict[str, Any]:
        key = generate_cache_key("workouts-dynamo", {"page": page, "page_size": page_size})
        return await self._read(
            key,
            lambda: queries.get_workouts_paginated(
                self._store, self._workouts_table, page, page_size
            ),
        )

    async def workout_stats(self) -> dict[str, Any]:
        return await self._read(
            generate_cache_key("workout-stats"),
            lambda: queries.get_workout_stats(self._store, self._workouts_table),
            ttl=self._config.cache.stats_ttl_seconds,
        )

    async def get_workout(self, workout_id: str) -> dict | None:
        return await self._read(
            generate_cache_key("workout", {"id": workout_id}),
            lambda: queries.get_workout_by_id(self._store, self._workouts_table, workout_id),
        )

    async def workouts_in_range(self, start_date: str, end_date: str) -> list[dict]:
        key = generate_cache_key("workouts-range", {"start": start_date, "end": end_date})
        return await self._read(
            key,
            lambda: queries.get_workouts_by_date_range(
                self._store, self._workouts_table, start_date, end_date
            ),
        )

    async def exercises_for_workout(self, workout_id: str) -> list[dict]:
        return await self._read(
            generate_cache_key("workout-exercises", {"id": workout_id}),
            lambda: queries.get_exercises_by_workout(
                self._store, self._exercises_table, workout_id
            ),
        )

    async def exercise_history(self, exercise_name: str, limit: int = 50) -> list[dict]:
        key = generate_cache_key(
            "exercise-history", {"exerciseName": exercise_name, "limit": limit}
        )
        return await self._read(
            key,
            lambda: queries.get_exercise_history(
                self._store, self._exercises_table, exercise_name, limit
            ),
        )
