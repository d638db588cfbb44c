"""Fixtures for HTTP-level tests: a real app on the in-memory store."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.config import get_settings
from src.main import create_app

SITE_KEY = "test-site-key"


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("HEVY_API_KEY", "")
    monkeypatch.setenv("SITE_KEY", SITE_KEY)
    get_settings.cache_clear()
    with TestClient(create_app()) as test_client:
        yield test_client
    get_settings.cache_clear()


@pytest.fixture
def seed(client: TestClient):
    """Insert workout/exercise items straight into the app's store."""

    def _seed(workouts: list[dict], exercises: list[dict] | None = None) -> None:
        store = client.app.state.store
        for w in workouts:
            store.table("Workouts")[w["id"]] = w
        for e in exercises or []:
            store.table("Exercises")[e["exercise_id"]] = e

    return _seed
