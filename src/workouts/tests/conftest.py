"""Shared fixtures and Hevy payload builders for workout sync tests."""

from __future__ import annotations

from dataclasses import replace

import pytest

from src.config import Settings
from src.services.cache import TTLCache
from src.services.store import InMemoryDocumentStore
from src.workouts.config_loader import BackfillConfig, SyncConfig, load_sync_config
from src.workouts.hevy import HevyAPIError, WorkoutPage
from src.workouts.sync.backfill import BackfillSynchronizer


def make_set(weight=None, reps=None, distance=None, duration=None, set_type="normal") -> dict:
    return {
        "type": set_type,
        "weight_kg": weight,
        "reps": reps,
        "distance_meters": distance,
        "duration_seconds": duration,
    }


def make_workout(workout_id: str, day: int = 1, exercises: list[dict] | None = None) -> dict:
    """A Hevy workout dict starting at 07:00 UTC on 2026-01-<day>, one hour long."""
    if exercises is None:
        exercises = [
            {
                "title": "Squat (Barbell)",
                "sets": [
                    make_set(60, 5, set_type="warmup"),
                    make_set(100, 5),
                    make_set(100, 5),
                ],
            }
        ]
    return {
        "id": workout_id,
        "title": f"Workout {workout_id}",
        "start_time": f"2026-01-{day:02d}T07:00:00Z",
        "end_time": f"2026-01-{day:02d}T08:00:00Z",
        "exercises": exercises,
    }


class FakeHevy:
    """Serves pre-built pages of raw workouts, newest first.

    ``pages`` is a list of lists; page numbers are 1-based.  ``fail_on_page``
    makes that page raise like an upstream 5xx.  ``page_count`` overrides the
    page count Hevy reports (defaults to the number of pages).
    """

    def __init__(
        self,
        pages: list[list[dict]],
        configured: bool = True,
        fail_on_page: int | None = None,
        page_count: int | None = None,
    ) -> None:
        self.pages = pages
        self.page_count = len(pages) if page_count is None else page_count
        self.configured = configured
        self.fail_on_page = fail_on_page
        self.requested: list[int] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def fetch_workouts_page(self, page: int, page_size: int) -> WorkoutPage:
        self.requested.append(page)
        if page == self.fail_on_page:
            raise HevyAPIError("Hevy API error: 502 - Bad Gateway", status_code=502)
        items = self.pages[page - 1] if page <= len(self.pages) else []
        return WorkoutPage(items=items, page=page, page_count=self.page_count)


def paginate(workouts: list[dict], page_size: int) -> list[list[dict]]:
    return [workouts[i:i + page_size] for i in range(0, len(workouts), page_size)]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        hevy_api_key="test-key",
        workouts_table="Workouts",
        exercises_table="Exercises",
        _env_file=None,
    )


@pytest.fixture
def backfill_config() -> BackfillConfig:
    """Production tuning with the rate limit switched off."""
    return BackfillConfig(rate_limit_ms=0)


@pytest.fixture
def sync_config() -> SyncConfig:
    """The bundled sync_config.yaml."""
    return load_sync_config()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(page_size=4)


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache(default_ttl=14400, check_period=0)


@pytest.fixture
def make_synchronizer(store, cache, backfill_config, settings):
    """Factory: build a BackfillSynchronizer around a FakeHevy."""

    def _make(hevy: FakeHevy, **config_overrides) -> BackfillSynchronizer:
        config = replace(backfill_config, **config_overrides)
        return BackfillSynchronizer(store, hevy, cache, config, settings=settings)

    return _make

