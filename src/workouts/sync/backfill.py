"""Backfill synchronizer: bring the store up to date with Hevy.

Walks ``GET /v1/workouts`` newest first and inserts every workout (plus one
item per exercise) the store is missing.  Existing records are never
updated.  Designed to:
- Never create duplicates: every write is a conditional insert
- Avoid walking the whole history on every run: stop after N consecutive
  already-stored workouts (``consecutive_existing_threshold``, default 10)
- Respect Hevy rate limits (configurable delay between records and pages)
- Leave the read cache consistent: affected keys are invalidated when
  anything new landed

A single already-stored workout does not prove everything older is stored
(Hevy workouts can be backdated or edited out of order), hence a run of
consecutive hits rather than the first hit.

Two overlapping runs are safe: the slower one sees the faster one's inserts
as conflicts, which only count toward its own stop threshold.

Usage::

    synchronizer = BackfillSynchronizer(store, hevy, cache, config, settings)
    result = await synchronizer.run()
    logger.info("Backfill: %s", result.to_dict())
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from src.config import Settings, get_settings
from src.services.cache import TTLCache
from src.services.store import DocumentStore, RecordExistsError
from src.workouts.base import WorkoutRecord
from src.workouts.config_loader import BackfillConfig
from src.workouts.hevy import HevyClient
from src.workouts.sync.dedup import (
    EXERCISE_KEY,
    WORKOUT_KEY,
    InMemoryDedupCache,
    build_exercise_item,
    build_workout_item,
)

logger = logging.getLogger("logbook.workouts.sync.backfill")


class SyncState(str, Enum):
    idle = "idle"
    fetching = "fetching"
    storing = "storing"
    stopped = "stopped"
    failed = "failed"


class StopReason(str, Enum):
    exhausted = "exhausted"   # upstream has no more pages
    caught_up = "caught_up"   # hit the consecutive-existing threshold


@dataclass
class BackfillResult:
    """Summary of one backfill run.

    Attributes:
        new_record_count: Workouts inserted by this run.
        pages_fetched:    Upstream pages requested (one API call each).
        elapsed_ms:       Wall time of the run.
        state:            Terminal state: stopped or failed.
        stop_reason:      Why a stopped run stopped.
        error:            Error message if the run failed.
        cache_cleared:    True if cache keys were invalidated.
        stored_ids:       Inserted workout ids, in insertion order.
    """

    new_record_count: int = 0
    pages_fetched: int = 0
    elapsed_ms: int = 0
    state: SyncState = SyncState.idle
    stop_reason: StopReason | None = None
    error: str | None = None
    cache_cleared: bool = False
    stored_ids: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is SyncState.stopped

    def to_dict(self) -> dict[str, Any]:
        return {
            "newRecordCount": self.new_record_count,
            "pagesFetched": self.pages_fetched,
            "elapsedMs": self.elapsed_ms,
            "state": self.state.value,
            "stopReason": self.stop_reason.value if self.stop_reason else None,
            "error": self.error,
            "cacheCleared": self.cache_cleared,
        }


class BackfillSynchronizer:
    """Idempotent, paginated Hevy → store synchronization.

    One instance may be run any number of times, including concurrently;
    all per-run state lives in ``run()``.  ``state`` only reports the phase
    of the most recently active run.

    Args:
        store:    Document store holding the Workouts and Exercises tables.
        hevy:     Upstream API client.
        cache:    Shared read cache to invalidate after new inserts.
        config:   Backfill tuning (page size, delays, threshold, patterns).
        settings: Table names.
        sleep:    Awaitable delay function, injectable for tests.
    """

    def __init__(
        self,
        store: DocumentStore,
        hevy: HevyClient,
        cache: TTLCache,
        config: BackfillConfig,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        s = settings or get_settings()
        self._store = store
        self._hevy = hevy
        self._cache = cache
        self._config = config
        self._workouts_table = s.workouts_table
        self._exercises_table = s.exercises_table
        self._sleep = sleep
        self.state = SyncState.idle

    @property
    def is_configured(self) -> bool:
        """True when the upstream client has credentials to run a backfill."""
        return self._hevy.is_configured

    async def run(self) -> BackfillResult:
        """Run one backfill to completion.

        Never raises for upstream or store failures; they are reported in
        the result with ``state == failed``.
        """
        result = BackfillResult()
        started = time.monotonic()

        if not self.is_configured:
            logger.warning("HEVY_API_KEY not configured, skipping backfill")
            result.state = self.state = SyncState.failed
            result.error = "Missing HEVY_API_KEY"
            return result

        logger.info("Starting workout backfill from Hevy")
        try:
            result.stop_reason = await self._walk(result)
            result.state = self.state = SyncState.stopped
        except Exception as exc:
            logger.exception("Backfill failed after %d new workouts", result.new_record_count)
            result.state = self.state = SyncState.failed
            result.error = str(exc)

        # The store changed even if a later step failed
        if result.new_record_count > 0:
            logger.info(
                "%d new workouts stored, clearing workout caches", result.new_record_count
            )
            for pattern in self._config.invalidate_patterns:
                self._cache.invalidate(pattern)
            result.cache_cleared = True
        else:
            logger.info("No new workouts found, keeping existing cache")

        result.elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Backfill %s (%s): %d new workouts, %d pages in %dms",
            result.state.value,
            result.stop_reason.value if result.stop_reason else result.error,
            result.new_record_count,
            result.pages_fetched,
            result.elapsed_ms,
        )
        return result

    async def _walk(self, result: BackfillResult) -> StopReason:
        cfg = self._config
        seen = InMemoryDedupCache()
        consecutive_existing = 0
        page = 1

        while True:
            self.state = SyncState.fetching
            logger.info("Fetching Hevy page %d", page)
            workout_page = await self._hevy.fetch_workouts_page(page, cfg.page_size)
            result.pages_fetched += 1

            if not workout_page.items:
                logger.info("Hevy page %d is empty, no more workouts", page)
                return StopReason.exhausted

            logger.info("Processing %d workouts from page %d", len(workout_page.items), page)
            for raw in workout_page.items:
                workout_id = raw.get("id")
                if workout_id and seen.is_seen(workout_id):
                    logger.debug("Workout %s already handled this run, skipping", workout_id)
                    continue

                self.state = SyncState.storing
                workout = WorkoutRecord.from_api(raw)
                seen.mark_seen(workout.id)

                if await self._insert_workout(workout):
                    result.new_record_count += 1
                    result.stored_ids.append(workout.id)
                    consecutive_existing = 0
                    await self._insert_exercises(workout)
                else:
                    consecutive_existing += 1
                    logger.info(
                        "Workout %s already stored (%d/%d consecutive)",
                        workout.id,
                        consecutive_existing,
                        cfg.consecutive_existing_threshold,
                    )
                    if consecutive_existing >= cfg.consecutive_existing_threshold:
                        logger.info("Caught up with previously synced workouts")
                        return StopReason.caught_up

                await self._sleep(cfg.rate_limit_seconds)

            if workout_page.is_last:
                logger.info("Reached last Hevy page (%d)", workout_page.page)
                return StopReason.exhausted

            page += 1
            await self._sleep(cfg.rate_limit_seconds)

    async def _insert_workout(self, workout: WorkoutRecord) -> bool:
        """Insert the workout item. Returns False if it already existed."""
        try:
            await self._store.put_item_if_absent(
                self._workouts_table, build_workout_item(workout), WORKOUT_KEY
            )
        except RecordExistsError:
            return False
        logger.info("Stored workout %s (%s)", workout.id, workout.title)
        return True

    async def _insert_exercises(self, workout: WorkoutRecord) -> None:
        """Insert one item per exercise of a newly stored workout.

        Exercise inserts are individually idempotent; a conflict on one
        (left over from an earlier interrupted run) is skipped.
        """
        for exercise in workout.exercises:
            try:
                await self._store.put_item_if_absent(
                    self._exercises_table,
                    build_exercise_item(workout, exercise),
                    EXERCISE_KEY,
                )
            except RecordExistsError:
                logger.debug("Exercise %s already stored, skipping", exercise.exercise_id)
