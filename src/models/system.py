"""Pydantic models for operational endpoints: backfill runs and cache admin."""

from __future__ import annotations

from pydantic import Field

from src.models.base import LogbookBase


# ---------- Backfill ----------

class BackfillRunRead(LogbookBase):
    success: bool
    message: str
    new_record_count: int = Field(alias="newRecordCount")
    pages_fetched: int = Field(alias="pagesFetched")
    elapsed_ms: int = Field(alias="elapsedMs")
    state: str
    stop_reason: str | None = Field(default=None, alias="stopReason")
    error: str | None = None
    cache_cleared: bool = Field(alias="cacheCleared")


# ---------- Cache admin ----------

class CacheStatsRead(LogbookBase):
    hits: int
    misses: int
    total_keys: int = Field(alias="totalKeys")
    keys: list[str]


class CacheClearRequest(LogbookBase):
    # Exact key, ``*`` glob, or omitted to clear everything
    key: str | None = None


class CacheClearRead(LogbookBase):
    cleared: str
    removed: int = Field(ge=0)
