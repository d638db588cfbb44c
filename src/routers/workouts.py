"""Workout read endpoints and the manual backfill trigger.

Every read goes through ``WorkoutReadService`` and therefore the shared
cache; a miss on the first listing page or on stats also starts a
background sync.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from src.dependencies import ReadService, Synchronizer
from src.models.system import BackfillRunRead
from src.models.workouts import WorkoutPageRead, WorkoutStatsRead
from src.services.store import StoreError
from src.workouts.sync.backfill import BackfillResult

router = APIRouter(tags=["workouts"])
logger = logging.getLogger("logbook.routers.workouts")


def _store_failure(what: str, exc: StoreError) -> HTTPException:
    logger.error("Error fetching %s: %s", what, exc)
    return HTTPException(status_code=500, detail=f"Error fetching {what}: {exc}")


# ---------- Workouts ----------

@router.get("/workouts", response_model=WorkoutPageRead)
async def list_workouts(
    service: ReadService,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
) -> Any:
    try:
        return await service.list_workouts(page, page_size)
    except StoreError as exc:
        raise _store_failure("workouts", exc) from exc


@router.get("/workouts/stats", response_model=WorkoutStatsRead)
async def workout_stats(service: ReadService) -> Any:
    try:
        return await service.workout_stats()
    except StoreError as exc:
        raise _store_failure("workout stats", exc) from exc


@router.get("/workouts/range")
async def workouts_in_range(
    service: ReadService,
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> list[dict[str, Any]]:
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    try:
        return await service.workouts_in_range(start_date.isoformat(), end_date.isoformat())
    except StoreError as exc:
        raise _store_failure("workouts", exc) from exc


@router.get("/workouts/{workout_id}")
async def get_workout(workout_id: str, service: ReadService) -> dict[str, Any]:
    try:
        workout = await service.get_workout(workout_id)
    except StoreError as exc:
        raise _store_failure("workout", exc) from exc
    if workout is None:
        raise HTTPException(status_code=404, detail="Workout not found")
    return workout


@router.get("/workouts/{workout_id}/exercises")
async def workout_exercises(workout_id: str, service: ReadService) -> list[dict[str, Any]]:
    try:
        return await service.exercises_for_workout(workout_id)
    except StoreError as exc:
        raise _store_failure("exercises", exc) from exc


# ---------- Exercises ----------

@router.get("/exercises/history/{exercise_name}")
async def exercise_history(
    exercise_name: str,
    service: ReadService,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[dict[str, Any]]:
    try:
        return await service.exercise_history(exercise_name, limit)
    except StoreError as exc:
        raise _store_failure("exercise history", exc) from exc


# ---------- Backfill ----------

def _run_response(result: BackfillResult, message: str, status_code: int) -> JSONResponse:
    body = BackfillRunRead(success=result.succeeded, message=message, **result.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


@router.post("/workouts/backfill", response_model=BackfillRunRead)
async def trigger_backfill(synchronizer: Synchronizer) -> Any:
    """Run a backfill in the request and return its summary.

    503 when sync is not configured (no sync config or no Hevy key),
    500 when the run itself failed.
    """
    logger.info("Manual backfill triggered via API")
    if synchronizer is None:
        raise HTTPException(status_code=503, detail="Sync configuration unavailable")
    result = await synchronizer.run()
    if not synchronizer.is_configured:
        return _run_response(result, "Backfill not configured", 503)
    if not result.succeeded:
        return _run_response(result, "Backfill failed", 500)
    return _run_response(result, "Backfill completed successfully", 200)
