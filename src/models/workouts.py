"""Pydantic models for workout read endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from src.models.base import LogbookBase


# ---------- Listing ----------

class WorkoutPageRead(LogbookBase):
    # Store items pass through untouched; their shape is set by the sync item builders
    workouts: list[dict[str, Any]]
    page: int = Field(ge=1)
    page_count: int = Field(ge=0)
    total_count: int = Field(ge=0)
    page_size: int = Field(ge=1)


# ---------- Stats ----------

class WorkoutStatsRead(LogbookBase):
    total_workouts: int = Field(alias="totalWorkouts")
    total_volume: int = Field(alias="totalVolume")
    average_duration: int = Field(alias="averageDuration")
    workout_types: dict[str, int] = Field(default_factory=dict, alias="workoutTypes")
    recent_activity: list[dict[str, Any]] = Field(default_factory=list, alias="recentActivity")
