"""Deduplication keys and store item builders for workout ingestion.

Dedup keys:
    - Workouts table:  ``id`` (Hevy workout id) — conditional insert on attribute_not_exists(id)
    - Exercises table: ``exercise_id`` = ``{workout_id}_{index}`` — conditional insert likewise

The store's conditional insert is the authoritative dedup mechanism.  The
in-memory cache below only stops one backfill run from re-processing a
workout it already handled when upstream page boundaries shift mid-run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from src.workouts.base import ExerciseRecord, WorkoutRecord
from src.workouts.metrics import exercise_metrics, workout_metrics

logger = logging.getLogger("logbook.workouts.sync.dedup")

DATA_SOURCE = "hevy_api"
WORKOUT_KEY = "id"
EXERCISE_KEY = "exercise_id"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_workout_item(workout: WorkoutRecord, now: str | None = None) -> dict:
    """Build the Workouts table item, derived metrics included."""
    stamp = now or _utc_now_iso()
    return {
        WORKOUT_KEY: workout.id,
        "title": workout.title,
        "start_time": workout.raw_start_time,
        "end_time": workout.raw_end_time,
        "exercises": workout.raw_exercises,
        **workout_metrics(workout).to_item(),
        "created_at": stamp,
        "data_source": DATA_SOURCE,
        "backfilled_at": stamp,
    }


def build_exercise_item(
    workout: WorkoutRecord, exercise: ExerciseRecord, now: str | None = None
) -> dict:
    """Build the Exercises table item for one exercise of ``workout``."""
    stamp = now or _utc_now_iso()
    return {
        EXERCISE_KEY: exercise.exercise_id,
        "workout_id": workout.id,
        "exercise_name": exercise.name,
        "workout_date": workout.workout_date.isoformat(),
        "workout_title": workout.title,
        "start_time": workout.raw_start_time,
        "end_time": workout.raw_end_time,
        "sets": exercise.raw_sets,
        "exercise_index": exercise.index,
        **exercise_metrics(exercise).to_item(),
        "created_at": stamp,
        "data_source": DATA_SOURCE,
        "backfilled_at": stamp,
    }


class InMemoryDedupCache:
    """Per-run set of workout ids already handled.

    Not a replacement for the store's conditional insert; that is the
    authoritative dedup mechanism.

    Usage::

        seen = InMemoryDedupCache()
        if seen.is_seen(workout_id):
            logger.debug("Skipping duplicate: %s", workout_id)
        else:
            seen.mark_seen(workout_id)
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def is_seen(self, key: str) -> bool:
        return key in self._seen

    def mark_seen(self, key: str) -> None:
        self._seen.add(key)

