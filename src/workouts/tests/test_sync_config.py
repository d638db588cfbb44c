"""Tests for sync_config.yaml loading and validation."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from src.workouts import config_loader
from src.workouts.config_loader import (
    ConfigValidationError,
    SyncConfig,
    _validate_and_build,
    load_sync_config,
    reload_sync_config,
)


class TestConfigLoading:
    def test_load_default_config(self, sync_config: SyncConfig) -> None:
        """The bundled sync_config.yaml loads without errors."""
        assert sync_config.version == "1.0"
        assert sync_config.cache.default_ttl_seconds == 14400
        assert sync_config.cache.stats_ttl_seconds == 21600

    def test_backfill_defaults(self, sync_config: SyncConfig) -> None:
        bf = sync_config.backfill
        assert bf.page_size == 10
        assert bf.rate_limit_ms == 150
        assert bf.rate_limit_seconds == pytest.approx(0.15)
        assert bf.consecutive_existing_threshold == 10
        assert "api-workout-stats" in bf.invalidate_patterns

    def test_first_page_listing_triggers_sync(self, sync_config: SyncConfig) -> None:
        assert sync_config.triggers_sync("api-workouts-dynamo-page:1-page_size:10")
        assert sync_config.triggers_sync("api-workout-stats")

    def test_detail_reads_do_not_trigger_sync(self, sync_config: SyncConfig) -> None:
        assert not sync_config.triggers_sync("api-workouts-dynamo-page:2-page_size:10")
        assert not sync_config.triggers_sync("api-workout-id:abc")
        assert not sync_config.triggers_sync("api-exercise-history-exerciseName:Squat-limit:50")

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_sync_config(tmp_path / "nope.yaml")

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "sync.yaml"
        path.write_text("")
        config = load_sync_config(path)
        assert config.backfill.page_size == 10
        assert config.trigger_patterns == ["api-workout-stats"]


class TestValidation:
    def test_zero_rate_limit_allowed(self) -> None:
        config = _validate_and_build({"backfill": {"rate_limit_ms": 0}})
        assert config.backfill.rate_limit_seconds == 0

    def test_zero_page_size_rejected(self) -> None:
        with pytest.raises(ConfigValidationError, match="page_size"):
            _validate_and_build({"backfill": {"page_size": 0}})

    def test_non_numeric_ttl_rejected(self) -> None:
        with pytest.raises(ConfigValidationError, match="default_ttl_seconds"):
            _validate_and_build({"cache": {"default_ttl_seconds": "soon"}})

    def test_every_error_reported(self) -> None:
        raw = {
            "cache": {"stats_ttl_seconds": -1},
            "sync_triggers": "api-workout-stats",
            "backfill": {"consecutive_existing_threshold": 0, "invalidate_patterns": []},
        }
        with pytest.raises(ConfigValidationError) as exc_info:
            _validate_and_build(raw)
        message = str(exc_info.value)
        assert "4 validation error(s)" in message
        assert "stats_ttl_seconds" in message
        assert "sync_triggers" in message
        assert "consecutive_existing_threshold" in message
        assert "invalidate_patterns" in message

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("cache: [unclosed")
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            load_sync_config(path)


class TestReload:
    def test_reload_replaces_singleton(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr(config_loader, "_config", None)
        path = tmp_path / "sync.yaml"
        path.write_text(textwrap.dedent("""
            version: "2.0"
            backfill:
              page_size: 25
        """))

        config = reload_sync_config(path)

        assert config.version == "2.0"
        assert config_loader.get_sync_config() is config
        assert config.backfill.page_size == 25

    def test_invalid_reload_keeps_old_config(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr(config_loader, "_config", None)
        old = config_loader.get_sync_config()
        path = tmp_path / "bad.yaml"
        path.write_text("backfill:\n  page_size: -5\n")

        with pytest.raises(ConfigValidationError):
            reload_sync_config(path)

        assert config_loader.get_sync_config() is old
