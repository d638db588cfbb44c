"""Derived workout metrics, computed once at ingestion time.

Pure functions: no I/O, deterministic.  Metrics are always recomputed
wholesale from the raw sets; there is no incremental update path.

Per set, ``volume = weight * reps`` when both are positive.  Warmup sets are
excluded from every "working" aggregate but still count toward session
volume, distance and duration.

Estimated one-rep max uses the Epley formula::

    1RM = weight                           if reps == 1
    1RM = round(weight * (1 + reps / 30))  otherwise (one decimal)

Weight-derived fields are ``None`` rather than 0 when an exercise carries no
weight at all, so "not applicable" never reads as "zero".
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from src.workouts.base import (
    BodyweightLoad,
    CardioLoad,
    ExerciseRecord,
    SetKind,
    WeightedLoad,
    WorkoutRecord,
)

STRENGTH = "strength"
CARDIO = "cardio"
BODYWEIGHT = "bodyweight"
MIXED = "mixed"


def round1(value: float) -> float:
    """Round to one decimal place, halves away from zero."""
    scaled = abs(value) * 10
    rounded = math.floor(scaled + 0.5) / 10
    return math.copysign(rounded, value) if value else 0.0


def round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def estimated_1rm(weight: float, reps: int) -> float:
    """Epley estimate of one-rep max."""
    if reps == 1:
        return weight
    return round1(weight * (1 + reps / 30))


@dataclass
class ExerciseMetrics:
    session_volume: float
    working_set_volume: float
    heaviest_weight: float | None
    best_estimated_1rm: float | None
    total_working_sets: int
    total_warmup_sets: int
    total_reps: int
    total_distance: float | None
    total_duration: int | None
    average_weight: float | None
    exercise_type: str

    @property
    def total_working_reps(self) -> int:
        return self.total_reps

    def to_item(self) -> dict[str, Any]:
        """Stored attribute names (camelCase, as the site's readers expect)."""
        return {
            "sessionVolume": self.session_volume,
            "workingSetVolume": self.working_set_volume,
            "heaviestWeight": self.heaviest_weight,
            "bestEstimated1RM": self.best_estimated_1rm,
            "totalWorkingSets": self.total_working_sets,
            "totalWarmupSets": self.total_warmup_sets,
            "totalReps": self.total_reps,
            "totalWorkingReps": self.total_working_reps,
            "totalDistance": self.total_distance,
            "totalDuration": self.total_duration,
            "averageWeight": self.average_weight,
            "exerciseType": self.exercise_type,
        }


@dataclass
class WorkoutMetrics:
    total_volume: float
    total_working_sets: int
    total_warmup_sets: int
    unique_exercises: int
    strength_exercises: int
    cardio_exercises: int
    total_distance: float | None
    total_duration: int | None
    duration_minutes: int
    workout_date: str
    workout_type: str

    def to_item(self) -> dict[str, Any]:
        return {
            "totalVolume": self.total_volume,
            "totalWorkingSets": self.total_working_sets,
            "totalWarmupSets": self.total_warmup_sets,
            "uniqueExercises": self.unique_exercises,
            "strengthExercises": self.strength_exercises,
            "cardioExercises": self.cardio_exercises,
            "totalDistance": self.total_distance,
            "totalDuration": self.total_duration,
            "durationMinutes": self.duration_minutes,
            "workoutDate": self.workout_date,
            "workoutType": self.workout_type,
        }


def exercise_metrics(exercise: ExerciseRecord) -> ExerciseMetrics:
    """Compute the derived fields for one exercise."""
    session_volume = 0.0
    working_set_volume = 0.0
    heaviest = 0.0
    best_1rm = 0.0
    working_sets = 0
    warmup_sets = 0
    total_reps = 0
    total_distance = 0.0
    total_duration = 0
    has_weight = False

    for s in exercise.sets:
        load = s.load
        volume = 0.0
        if isinstance(load, WeightedLoad):
            has_weight = True
            volume = load.volume
        elif not isinstance(load, (CardioLoad, BodyweightLoad)):
            raise TypeError(f"Unknown set load: {load!r}")

        if s.kind is SetKind.warmup:
            warmup_sets += 1
        else:
            working_sets += 1
            if volume > 0:
                working_set_volume += volume
                total_reps += load.reps
                heaviest = max(heaviest, load.weight_kg)
                best_1rm = max(best_1rm, estimated_1rm(load.weight_kg, load.reps))

        session_volume += volume
        total_distance += s.distance_meters
        total_duration += s.duration_seconds

    if has_weight:
        exercise_type = STRENGTH
    elif total_distance > 0 or total_duration > 0:
        exercise_type = CARDIO
    else:
        exercise_type = BODYWEIGHT

    return ExerciseMetrics(
        session_volume=round1(session_volume),
        working_set_volume=round1(working_set_volume),
        heaviest_weight=heaviest if has_weight else None,
        best_estimated_1rm=best_1rm if has_weight and best_1rm > 0 else None,
        total_working_sets=working_sets,
        total_warmup_sets=warmup_sets,
        total_reps=total_reps,
        total_distance=round1(total_distance) if total_distance > 0 else None,
        total_duration=total_duration if total_duration > 0 else None,
        average_weight=(
            round1(working_set_volume / total_reps) if has_weight and total_reps > 0 else None
        ),
        exercise_type=exercise_type,
    )


def workout_metrics(workout: WorkoutRecord) -> WorkoutMetrics:
    """Compute the derived fields for a whole workout."""
    total_volume = 0.0
    working_sets = 0
    warmup_sets = 0
    total_distance = 0.0
    total_duration = 0
    strength = 0
    cardio = 0

    for exercise in workout.exercises:
        m = exercise_metrics(exercise)
        total_volume += sum(
            s.load.volume for s in exercise.sets if isinstance(s.load, WeightedLoad)
        )
        working_sets += m.total_working_sets
        warmup_sets += m.total_warmup_sets
        total_distance += sum(s.distance_meters for s in exercise.sets)
        total_duration += sum(s.duration_seconds for s in exercise.sets)
        if m.exercise_type == STRENGTH:
            strength += 1
        elif m.exercise_type == CARDIO:
            cardio += 1

    if strength and cardio:
        workout_type = MIXED
    elif strength:
        workout_type = STRENGTH
    elif cardio:
        workout_type = CARDIO
    else:
        workout_type = BODYWEIGHT

    elapsed = (workout.end_time - workout.start_time).total_seconds()

    return WorkoutMetrics(
        total_volume=round1(total_volume),
        total_working_sets=working_sets,
        total_warmup_sets=warmup_sets,
        unique_exercises=len(workout.exercises),
        strength_exercises=strength,
        cardio_exercises=cardio,
        total_distance=round1(total_distance) if total_distance > 0 else None,
        total_duration=total_duration if total_duration > 0 else None,
        duration_minutes=round_half_away(elapsed / 60),
        workout_date=workout.workout_date.isoformat(),
        workout_type=workout_type,
    )
