"""Canonical workout records parsed from the Hevy API.

Hevy sends sets as loosely typed dicts where any of ``weight_kg``, ``reps``,
``distance_meters`` and ``duration_seconds`` may be null.  Here each set is
parsed once into a tagged record: a ``SetKind`` (warmup vs working) plus
exactly one load variant, so the metrics code can branch exhaustively.

These dataclasses are the single source of truth consumed by the metrics
calculator and the backfill item builders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

logger = logging.getLogger("logbook.workouts")


class SetKind(str, Enum):
    """Hevy's ``normal``, ``failure`` and ``dropset`` are all working sets."""

    warmup = "warmup"
    working = "working"

    @classmethod
    def from_api(cls, raw_type: str | None) -> "SetKind":
        return cls.warmup if raw_type == "warmup" else cls.working


# ---------------------------------------------------------------------------
# Set load variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeightedLoad:
    """A set lifted with external load.

    Weighted carries (farmer's walk, sled push) keep their distance and
    duration alongside the weight.
    """

    weight_kg: float
    reps: int = 0
    distance_meters: float = 0.0
    duration_seconds: int = 0

    @property
    def volume(self) -> float:
        return self.weight_kg * self.reps if self.weight_kg > 0 and self.reps > 0 else 0.0


@dataclass(frozen=True)
class CardioLoad:
    """Distance and/or time with no external load."""

    distance_meters: float = 0.0
    duration_seconds: int = 0


@dataclass(frozen=True)
class BodyweightLoad:
    """Reps only, or a set with no recorded data at all."""

    reps: int = 0


SetLoad = Union[WeightedLoad, CardioLoad, BodyweightLoad]


def _num(value: Any, cast: type) -> Any:
    if value is None or value == "":
        return cast(0)
    try:
        return cast(float(value)) if cast is int else cast(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric set value %r", value)
        return cast(0)


@dataclass(frozen=True)
class SetRecord:
    kind: SetKind
    load: SetLoad

    @property
    def distance_meters(self) -> float:
        if isinstance(self.load, (WeightedLoad, CardioLoad)):
            return self.load.distance_meters
        return 0.0

    @property
    def duration_seconds(self) -> int:
        if isinstance(self.load, (WeightedLoad, CardioLoad)):
            return self.load.duration_seconds
        return 0

    @classmethod
    def from_api(cls, raw: dict) -> "SetRecord":
        """Classify a raw Hevy set dict into a tagged SetRecord."""
        weight = _num(raw.get("weight_kg"), float)
        reps = _num(raw.get("reps"), int)
        distance = _num(raw.get("distance_meters"), float)
        duration = _num(raw.get("duration_seconds"), int)

        load: SetLoad
        if weight > 0:
            load = WeightedLoad(
                weight_kg=weight,
                reps=reps,
                distance_meters=distance,
                duration_seconds=duration,
            )
        elif distance > 0 or duration > 0:
            load = CardioLoad(distance_meters=distance, duration_seconds=duration)
        else:
            load = BodyweightLoad(reps=reps)
        return cls(kind=SetKind.from_api(raw.get("type")), load=load)


# ---------------------------------------------------------------------------
# Exercise / workout
# ---------------------------------------------------------------------------


@dataclass
class ExerciseRecord:
    """One exercise within a workout, ordered by ``index``.

    Attributes:
        workout_id: Back-reference to the owning workout.
        index:      Position within the workout; part of the exercise id.
        name:       Exercise title as shown in Hevy.
        sets:       Parsed sets, in upstream order.
        raw_sets:   Sets exactly as Hevy sent them (persisted verbatim).
    """

    workout_id: str
    index: int
    name: str
    sets: list[SetRecord] = field(default_factory=list)
    raw_sets: list[dict] = field(default_factory=list)

    @property
    def exercise_id(self) -> str:
        return make_exercise_id(self.workout_id, self.index)


@dataclass
class WorkoutRecord:
    """A Hevy workout. Identity is the source-assigned ``id``.

    Attributes:
        raw_exercises: Exercises exactly as Hevy sent them (persisted verbatim).
    """

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    exercises: list[ExerciseRecord] = field(default_factory=list)
    raw_start_time: str = ""
    raw_end_time: str = ""
    raw_exercises: list[dict] = field(default_factory=list)

    @property
    def workout_date(self) -> date:
        """Calendar date of the start, in the offset Hevy reported it with."""
        return self.start_time.date()

    @classmethod
    def from_api(cls, raw: dict) -> "WorkoutRecord":
        """Parse one workout dict from ``GET /v1/workouts``.

        Raises:
            ValueError: If ``id``, ``start_time`` or ``end_time`` is missing or malformed.
        """
        workout_id = raw.get("id")
        if not workout_id:
            raise ValueError("Hevy workout has no id")
        start_raw = raw.get("start_time")
        end_raw = raw.get("end_time")
        if not start_raw or not end_raw:
            raise ValueError(f"Hevy workout {workout_id} is missing start_time/end_time")

        raw_exercises = raw.get("exercises") or []
        exercises = [
            ExerciseRecord(
                workout_id=workout_id,
                index=i,
                name=ex.get("title") or "",
                sets=[SetRecord.from_api(s) for s in ex.get("sets") or []],
                raw_sets=list(ex.get("sets") or []),
            )
            for i, ex in enumerate(raw_exercises)
        ]
        return cls(
            id=workout_id,
            title=raw.get("title") or "Untitled Workout",
            start_time=parse_timestamp(start_raw),
            end_time=parse_timestamp(end_raw),
            exercises=exercises,
            raw_start_time=start_raw,
            raw_end_time=end_raw,
            raw_exercises=raw_exercises,
        )


def make_exercise_id(workout_id: str, index: int) -> str:
    return f"{workout_id}_{index}"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
