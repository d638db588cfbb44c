"""Shared fixtures for cache, store and pagination tests."""

from __future__ import annotations

import pytest

from src.services.cache import TTLCache
from src.services.store import InMemoryDocumentStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(default_ttl=60, check_period=0, clock=clock)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """In-memory store with tiny pages so every scan spans several pages."""
    return InMemoryDocumentStore(page_size=3)
