"""HTTP tests for workout reads, manual backfill and cache admin."""

from __future__ import annotations

from fastapi.testclient import TestClient

from src.config import get_settings
from src.tests.conftest import SITE_KEY
from src.workouts.config_loader import BackfillConfig
from src.workouts.sync.backfill import BackfillSynchronizer
from src.workouts.tests.conftest import FakeHevy, make_workout


def _workout(workout_id: str, day: int) -> dict:
    return {
        "id": workout_id,
        "title": f"Workout {workout_id}",
        "start_time": f"2026-01-{day:02d}T07:00:00Z",
        "end_time": f"2026-01-{day:02d}T08:00:00Z",
        "workoutDate": f"2026-01-{day:02d}",
        "totalVolume": 1000.0,
        "durationMinutes": 60,
        "workoutType": "strength",
    }


class TestHealth:
    def test_health_reports_store(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["store"] == "memory"
        assert body["syncEnabled"] is False


class TestWorkoutRoutes:
    def test_list_workouts(self, client: TestClient, seed) -> None:
        seed([_workout("a", 1), _workout("b", 2), _workout("c", 3)])

        resp = client.get("/api/workouts", params={"page": 1, "page_size": 2})

        assert resp.status_code == 200
        body = resp.json()
        assert [w["id"] for w in body["workouts"]] == ["c", "b"]
        assert body["page_count"] == 2
        assert body["total_count"] == 3

    def test_invalid_page_rejected(self, client: TestClient) -> None:
        assert client.get("/api/workouts", params={"page": 0}).status_code == 422

    def test_stats_use_camel_case(self, client: TestClient, seed) -> None:
        seed([_workout("a", 1), _workout("b", 2)])

        body = client.get("/api/workouts/stats").json()

        assert body["totalWorkouts"] == 2
        assert body["totalVolume"] == 2000
        assert body["workoutTypes"] == {"strength": 2}

    def test_get_workout_and_404(self, client: TestClient, seed) -> None:
        seed([_workout("a", 1)])

        assert client.get("/api/workouts/a").json()["title"] == "Workout a"
        assert client.get("/api/workouts/zzz").status_code == 404

    def test_exercises_for_workout(self, client: TestClient, seed) -> None:
        seed(
            [_workout("a", 1)],
            [
                {"exercise_id": "a_1", "workout_id": "a", "exercise_index": 1, "exercise_name": "Bench"},
                {"exercise_id": "a_0", "workout_id": "a", "exercise_index": 0, "exercise_name": "Squat"},
            ],
        )

        body = client.get("/api/workouts/a/exercises").json()

        assert [e["exercise_name"] for e in body] == ["Squat", "Bench"]

    def test_exercise_history(self, client: TestClient, seed) -> None:
        seed(
            [],
            [
                {"exercise_id": f"w{d}_0", "exercise_name": "Squat", "workout_date": f"2026-01-0{d}"}
                for d in range(1, 6)
            ],
        )

        body = client.get("/api/exercises/history/Squat", params={"limit": 2}).json()

        assert [e["workout_date"] for e in body] == ["2026-01-05", "2026-01-04"]

    def test_date_range(self, client: TestClient, seed) -> None:
        seed([_workout("a", 1), _workout("b", 2), _workout("c", 3)])

        resp = client.get(
            "/api/workouts/range", params={"start_date": "2026-01-02", "end_date": "2026-01-03"}
        )

        assert [w["id"] for w in resp.json()] == ["c", "b"]

    def test_reversed_date_range_rejected(self, client: TestClient) -> None:
        resp = client.get(
            "/api/workouts/range", params={"start_date": "2026-01-05", "end_date": "2026-01-01"}
        )
        assert resp.status_code == 400


class TestBackfillRoute:
    def test_missing_api_key_is_503(self, client: TestClient) -> None:
        resp = client.post("/api/workouts/backfill")

        assert resp.status_code == 503
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Missing HEVY_API_KEY"

    def test_successful_run(self, client: TestClient) -> None:
        state = client.app.state
        state.synchronizer = BackfillSynchronizer(
            state.store,
            FakeHevy([[make_workout("a", day=2), make_workout("b", day=1)]]),
            state.cache,
            BackfillConfig(rate_limit_ms=0),
            settings=get_settings(),
        )

        resp = client.post("/api/workouts/backfill")

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["newRecordCount"] == 2
        assert body["pagesFetched"] == 1
        assert body["stopReason"] == "exhausted"
        assert client.get("/api/workouts/a").status_code == 200

    def test_failed_run_is_500(self, client: TestClient) -> None:
        state = client.app.state
        state.synchronizer = BackfillSynchronizer(
            state.store,
            FakeHevy([[make_workout("a")]], fail_on_page=1),
            state.cache,
            BackfillConfig(rate_limit_ms=0),
            settings=get_settings(),
        )

        resp = client.post("/api/workouts/backfill")

        assert resp.status_code == 500
        assert resp.json()["state"] == "failed"

    def test_no_sync_config_is_503(self, client: TestClient) -> None:
        client.app.state.synchronizer = None
        assert client.post("/api/workouts/backfill").status_code == 503


class TestCacheAdmin:
    def test_requires_site_key(self, client: TestClient) -> None:
        assert client.get("/api/dev/cache").status_code == 401
        assert client.get("/api/dev/cache", params={"password": "wrong"}).status_code == 401

    def test_site_key_in_query_or_header(self, client: TestClient) -> None:
        assert client.get("/api/dev/cache", params={"password": SITE_KEY}).status_code == 200
        assert client.get("/api/dev/cache", headers={"X-Site-Key": SITE_KEY}).status_code == 200

    def test_localhost_skips_key(self, client: TestClient) -> None:
        resp = client.get("/api/dev/cache", headers={"host": "localhost:8000"})
        assert resp.status_code == 200

    def test_stats_and_pattern_clear(self, client: TestClient, seed) -> None:
        seed([_workout("a", 1)])
        client.get("/api/workouts/a")
        client.get("/api/workouts/a")
        auth = {"password": SITE_KEY}

        stats = client.get("/api/dev/cache", params=auth).json()
        assert stats["hits"] == 1
        assert "api-workout-id:a" in stats["keys"]

        resp = client.post("/api/dev/cache", params=auth, json={"key": "api-workout-*"})
        assert resp.json() == {"cleared": "api-workout-*", "removed": 1}

    def test_clear_all(self, client: TestClient, seed) -> None:
        seed([_workout("a", 1)])
        client.get("/api/workouts/a")

        resp = client.post("/api/dev/cache", params={"password": SITE_KEY})

        assert resp.json()["cleared"] == "all"
        stats = client.get("/api/dev/cache", params={"password": SITE_KEY}).json()
        assert stats["totalKeys"] == 0
