"""Store reads behind the cached workout endpoints.

These are the fetch functions handed to ``TTLCache.read_through``.  Every
full-table read goes through ``scan_table`` so results are never truncated
at the store's per-response size limit.  DynamoDB cannot sort on non-key
attributes, so sorting happens here after the scan.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import date, timedelta
from typing import Any

from src.services.pagination import query_all, scan_table
from src.services.store import DocumentStore
from src.workouts.metrics import round_half_away

logger = logging.getLogger("logbook.workouts.queries")

WORKOUT_LIST_PROJECTION = [
    "id",
    "title",
    "start_time",
    "end_time",
    "totalVolume",
    "totalWorkingSets",
    "totalWarmupSets",
    "uniqueExercises",
    "durationMinutes",
    "workoutType",
    "exercises",
]

STATS_PROJECTION = [
    "totalVolume",
    "durationMinutes",
    "workoutType",
    "uniqueExercises",
    "workoutDate",
]

WORKOUT_ID_INDEX = "workout_id-index"
EXERCISE_HISTORY_INDEX = "exercise_name-workout_date-index"


def _newest_first(items: list[dict], attr: str = "start_time") -> list[dict]:
    return sorted(items, key=lambda i: i.get(attr) or "", reverse=True)


async def get_workouts_paginated(
    store: DocumentStore, table: str, page: int = 1, page_size: int = 10
) -> dict[str, Any]:
    """Return one page of workouts, most recent first.

    The whole table is scanned and sorted before slicing.
    """
    started = time.monotonic()
    workouts = await scan_table(store, table, projection=WORKOUT_LIST_PROJECTION)
    logger.info(
        "Workout scan: %d workouts in %dms",
        len(workouts),
        int((time.monotonic() - started) * 1000),
    )

    workouts = _newest_first(workouts)
    total = len(workouts)
    start = (page - 1) * page_size
    return {
        "workouts": workouts[start:start + page_size],
        "page": page,
        "page_count": math.ceil(total / page_size) if page_size else 0,
        "total_count": total,
        "page_size": page_size,
    }


async def get_workout_by_id(store: DocumentStore, table: str, workout_id: str) -> dict | None:
    item = await store.get_item(table, {"id": workout_id})
    logger.debug("Workout %s %s", workout_id, "found" if item else "not found")
    return item


async def get_workouts_by_date_range(
    store: DocumentStore, table: str, start_date: str, end_date: str
) -> list[dict]:
    """Workouts whose ``workoutDate`` falls within [start_date, end_date], newest first."""
    workouts = await scan_table(
        store,
        table,
        filter_fn=lambda w: start_date <= (w.get("workoutDate") or "") <= end_date,
    )
    return _newest_first(workouts)


async def get_exercises_by_workout(
    store: DocumentStore, table: str, workout_id: str
) -> list[dict]:
    """Exercises of one workout, in workout order."""
    exercises = await query_all(store, table, WORKOUT_ID_INDEX, "workout_id", workout_id)
    return sorted(exercises, key=lambda e: e.get("exercise_index", 0))


async def get_exercise_history(
    store: DocumentStore, table: str, exercise_name: str, limit: int = 50
) -> list[dict]:
    """Most recent ``limit`` sessions of one exercise, newest first.

    A single store response may hold fewer than ``limit`` items, so pages
    are followed until the limit is reached or the index runs out.
    """
    items: list[dict] = []
    cursor = None
    while len(items) < limit:
        page = await store.query_page(
            table,
            EXERCISE_HISTORY_INDEX,
            "exercise_name",
            exercise_name,
            cursor=cursor,
            limit=limit - len(items),
            descending=True,
        )
        items.extend(page.items)
        cursor = page.continuation_cursor
        if cursor is None:
            break
    return items[:limit]


async def get_workout_stats(
    store: DocumentStore, table: str, today: date | None = None
) -> dict[str, Any]:
    """Aggregate statistics over every stored workout."""
    workouts = await scan_table(store, table, projection=STATS_PROJECTION)
    logger.info("Stats scan: %d workouts", len(workouts))

    if not workouts:
        return {
            "totalWorkouts": 0,
            "totalVolume": 0,
            "averageDuration": 0,
            "workoutTypes": {},
            "recentActivity": [],
        }

    total_volume = sum(w.get("totalVolume") or 0 for w in workouts)
    average_duration = sum(w.get("durationMinutes") or 0 for w in workouts) / len(workouts)

    workout_types: dict[str, int] = {}
    for w in workouts:
        kind = w.get("workoutType") or "unknown"
        workout_types[kind] = workout_types.get(kind, 0) + 1

    cutoff = ((today or date.today()) - timedelta(days=30)).isoformat()
    recent = [w for w in workouts if (w.get("workoutDate") or "") >= cutoff]
    recent.sort(key=lambda w: w.get("workoutDate") or "", reverse=True)

    return {
        "totalWorkouts": len(workouts),
        "totalVolume": round_half_away(total_volume),
        "averageDuration": round_half_away(average_duration),
        "workoutTypes": workout_types,
        "recentActivity": recent[:10],
    }
