"""Load, validate, and hot-reload the Logbook sync configuration.

The config lives in ``sync_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_sync_config()`` to re-read from
disk after an edit; no restart required.

Usage::

    from src.workouts.config_loader import get_sync_config

    config = get_sync_config()
    config.cache.stats_ttl_seconds        # 21600
    config.backfill.page_size             # 10
    config.triggers_sync("api-workout-stats")  # True
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from src.services.cache import key_matches

logger = logging.getLogger("logbook.workouts.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "sync_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class CacheConfig:
    """Read-through cache lifetimes, in seconds."""

    default_ttl_seconds: int = 14400   # 4 hours
    stats_ttl_seconds: int = 21600     # 6 hours
    volatile_ttl_seconds: int = 300    # "now playing"-style reads
    check_period_seconds: int = 600    # expiry sweep interval


@dataclass
class BackfillConfig:
    """Tuning for the upstream backfill walk."""

    page_size: int = 10
    rate_limit_ms: int = 150
    consecutive_existing_threshold: int = 10
    request_timeout_seconds: float = 30.0
    invalidate_patterns: list[str] = field(
        default_factory=lambda: [
            "api-workouts-dynamo*",
            "api-workout-stats",
            "api-workout*",
            "api-exercise*",
        ]
    )

    @property
    def rate_limit_seconds(self) -> float:
        return self.rate_limit_ms / 1000.0


@dataclass
class SyncConfig:
    """Complete, validated sync configuration.

    Attributes:
        version:          Config schema version string.
        cache:            Cache TTL settings.
        trigger_patterns: Cache key globs whose miss provokes a background sync.
        backfill:         Backfill tuning constants.
    """

    version: str
    cache: CacheConfig
    trigger_patterns: list[str]
    backfill: BackfillConfig

    def triggers_sync(self, cache_key: str) -> bool:
        """Return True if a miss on ``cache_key`` should start a backfill."""
        return any(key_matches(p, cache_key) for p in self.trigger_patterns)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when sync_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Sync config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> SyncConfig:
    """Validate the raw YAML dict and construct a SyncConfig.

    Missing keys fall back to the dataclass defaults; present keys must be
    positive numbers (zero is allowed for the rate limit).

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    errors: list[str] = []

    def _number(section: dict, key: str, name: str, default, cast, allow_zero=False):
        value = section.get(key, default)
        try:
            value = cast(value)
        except (TypeError, ValueError):
            errors.append(f"{name}.{key} must be a number, got {value!r}")
            return default
        if value < 0 or (value == 0 and not allow_zero):
            errors.append(f"{name}.{key} = {value} must be positive")
        return value

    version = str(raw.get("version", "1.0"))

    # ── Cache ──
    cache_raw = raw.get("cache") or {}
    defaults = CacheConfig()
    cache = CacheConfig(
        default_ttl_seconds=_number(
            cache_raw, "default_ttl_seconds", "cache", defaults.default_ttl_seconds, int
        ),
        stats_ttl_seconds=_number(
            cache_raw, "stats_ttl_seconds", "cache", defaults.stats_ttl_seconds, int
        ),
        volatile_ttl_seconds=_number(
            cache_raw, "volatile_ttl_seconds", "cache", defaults.volatile_ttl_seconds, int
        ),
        check_period_seconds=_number(
            cache_raw, "check_period_seconds", "cache", defaults.check_period_seconds, int
        ),
    )

    # ── Sync triggers ──
    trigger_patterns = raw.get("sync_triggers", ["api-workout-stats"])
    if not isinstance(trigger_patterns, list) or not all(
        isinstance(p, str) and p for p in trigger_patterns
    ):
        errors.append("sync_triggers must be a list of non-empty key patterns")
        trigger_patterns = []

    # ── Backfill ──
    bf_raw = raw.get("backfill") or {}
    bf_defaults = BackfillConfig()
    patterns = bf_raw.get("invalidate_patterns", bf_defaults.invalidate_patterns)
    if not isinstance(patterns, list) or not patterns:
        errors.append("backfill.invalidate_patterns must be a non-empty list")
        patterns = bf_defaults.invalidate_patterns
    backfill = BackfillConfig(
        page_size=_number(bf_raw, "page_size", "backfill", bf_defaults.page_size, int),
        rate_limit_ms=_number(
            bf_raw, "rate_limit_ms", "backfill", bf_defaults.rate_limit_ms, int,
            allow_zero=True,
        ),
        consecutive_existing_threshold=_number(
            bf_raw,
            "consecutive_existing_threshold",
            "backfill",
            bf_defaults.consecutive_existing_threshold,
            int,
        ),
        request_timeout_seconds=_number(
            bf_raw,
            "request_timeout_seconds",
            "backfill",
            bf_defaults.request_timeout_seconds,
            float,
        ),
        invalidate_patterns=[str(p) for p in patterns],
    )

    if errors:
        raise ConfigValidationError(
            f"sync_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return SyncConfig(
        version=version,
        cache=cache,
        trigger_patterns=list(trigger_patterns),
        backfill=backfill,
    )


def load_sync_config(path: Path | None = None) -> SyncConfig:
    """Load and validate the sync config from disk.

    Args:
        path: Override path to YAML. Uses the bundled sync_config.yaml by default.

    Returns:
        Validated SyncConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded sync config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: SyncConfig | None = None
_config_lock = threading.Lock()


def get_sync_config(path: Path | None = None) -> SyncConfig:
    """Return the global SyncConfig singleton, loading it on first call.

    ``path`` only matters for the first call; afterwards use
    ``reload_sync_config()``.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_sync_config(path)
    return _config


def reload_sync_config(path: Path | None = None) -> SyncConfig:
    """Reload the sync config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_sync_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded sync config: %s → %s", old_version, new_config.version)
    return new_config
