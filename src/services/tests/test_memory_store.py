"""Tests for the in-memory document store."""

from __future__ import annotations

import pytest

from src.services.store import InMemoryDocumentStore, RecordExistsError


class TestConditionalInsert:
    @pytest.mark.asyncio
    async def test_second_insert_conflicts(self, store: InMemoryDocumentStore) -> None:
        await store.put_item_if_absent("Workouts", {"id": "w1", "title": "Push"}, "id")

        with pytest.raises(RecordExistsError) as exc_info:
            await store.put_item_if_absent("Workouts", {"id": "w1", "title": "Changed"}, "id")

        assert exc_info.value.key == "w1"
        stored = await store.get_item("Workouts", {"id": "w1"})
        assert stored["title"] == "Push"

    @pytest.mark.asyncio
    async def test_returned_items_are_copies(self, store: InMemoryDocumentStore) -> None:
        await store.put_item_if_absent("Workouts", {"id": "w1", "exercises": []}, "id")
        item = await store.get_item("Workouts", {"id": "w1"})
        item["exercises"].append("mutated")
        again = await store.get_item("Workouts", {"id": "w1"})
        assert again["exercises"] == []

    @pytest.mark.asyncio
    async def test_missing_item_is_none(self, store: InMemoryDocumentStore) -> None:
        assert await store.get_item("Workouts", {"id": "nope"}) is None


class TestQueryPage:
    @pytest.mark.asyncio
    async def test_sort_key_descending_with_limit(self) -> None:
        store = InMemoryDocumentStore()
        rows = store.table("Exercises")
        for day in ("2026-01-01", "2026-01-03", "2026-01-02"):
            rows[day] = {"exercise_id": day, "exercise_name": "Squat", "workout_date": day}
        rows["other"] = {"exercise_id": "other", "exercise_name": "Bench", "workout_date": "2026-01-05"}

        page = await store.query_page(
            "Exercises",
            "exercise_name-workout_date-index",
            "exercise_name",
            "Squat",
            limit=2,
            descending=True,
        )

        assert [i["workout_date"] for i in page.items] == ["2026-01-03", "2026-01-02"]
        assert page.continuation_cursor is None
