"""In-process read-through cache with per-entry TTL.

Every externally facing read goes through ``TTLCache.read_through``.  A miss
is the one place where background synchronization can be hooked in, via the
optional ``on_miss`` callback, without the read path knowing anything about
synchronization.

Expiration is lazy on read, plus a periodic sweep piggy-backed on ``set``
(every ``check_period`` seconds).  All operations except ``read_through`` are
synchronous and never yield to the event loop, so a lookup cannot interleave
with another coroutine between the expiry check and the read.

Usage::

    cache = TTLCache(default_ttl=14400)
    key = generate_cache_key("workout", {"id": workout_id})
    workout = await cache.read_through(key, lambda: queries.get_workout_by_id(store, workout_id))
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger("logbook.cache")

DEFAULT_TTL_SECONDS = 4 * 60 * 60

_MISSING = object()


def generate_cache_key(endpoint: str, params: dict[str, Any] | None = None) -> str:
    """Build a deterministic cache key: ``api-<endpoint>[-<param>:<value>]*``.

    Params are emitted in sorted key order so callers passing the same set of
    parameters always land on the same entry.
    """
    if not params:
        return f"api-{endpoint}"
    parts = "-".join(f"{k}:{params[k]}" for k in sorted(params))
    return f"api-{endpoint}-{parts}"


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


def key_matches(pattern: str, key: str) -> bool:
    """Return True if ``key`` matches ``pattern``.

    ``*`` matches any run of characters; everything else is literal and the
    whole key must match.  A pattern without ``*`` is an exact comparison.
    """
    if "*" not in pattern:
        return pattern == key
    return _glob_to_regex(pattern).fullmatch(key) is not None


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclass
class CacheStats:
    """Snapshot of cache counters, as shown on the admin page."""

    hit_count: int
    miss_count: int
    keys: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hit_count,
            "misses": self.miss_count,
            "totalKeys": len(self.keys),
            "keys": sorted(self.keys),
        }


class TTLCache:
    """String-keyed in-memory cache with per-entry expiry and hit/miss accounting.

    Construct once at process start and pass the instance to every reader and
    writer; there is no module-level singleton.

    Args:
        default_ttl:  Lifetime in seconds for entries stored without an explicit ttl.
        check_period: Seconds between expiry sweeps (0 disables the sweep).
        clock:        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        check_period: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._check_period = check_period
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._last_sweep = clock()
        # Strong references to running on_miss tasks
        self._background: set[asyncio.Task] = set()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``.

        An expired entry is dropped and counted as a miss.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at > self._clock():
            self._hits += 1
            return entry.value
        if entry is not None:
            del self._entries[key]
            logger.debug("Cache expired: key=%s", key)
        self._misses += 1
        return default

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, overwriting and resetting expiry."""
        lifetime = self._default_ttl if ttl is None else ttl
        now = self._clock()
        self._maybe_sweep(now)
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=now + lifetime)

    async def read_through(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
        on_miss: Callable[[], Any] | None = None,
    ) -> Any:
        """Return the cached value for ``key``, fetching and storing it on a miss.

        On a miss, ``on_miss`` (if given) is scheduled as a background task
        before the fetch starts and is never awaited here; its failure is
        logged and cannot fail the read.  ``fetch_fn`` is awaited; if it
        raises, the exception propagates and nothing is cached.

        Args:
            key:      Cache key (see ``generate_cache_key``).
            fetch_fn: Zero-argument async callable producing the fresh value.
            ttl:      Lifetime in seconds; defaults to the cache default.
            on_miss:  Optional zero-argument callable (sync or async) run in the
                      background when the key is cold.

        Raises:
            ValueError: If ``key`` is empty or ``fetch_fn`` is not callable.
        """
        if not key:
            raise ValueError("Cache key is required for all cached reads")
        if not callable(fetch_fn):
            raise ValueError("fetch_fn is required and must be callable")

        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug("Cache HIT: key=%s", key)
            return cached

        logger.info("Cache MISS: key=%s", key)

        if on_miss is not None:
            logger.info("Cache miss hook scheduled for key=%s", key)
            task = asyncio.get_running_loop().create_task(self._run_on_miss(key, on_miss))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

        started = time.monotonic()
        try:
            value = await fetch_fn()
        except Exception:
            logger.exception("Cache fetch failed for key=%s; nothing cached", key)
            raise
        fetch_ms = int((time.monotonic() - started) * 1000)

        self.set(key, value, ttl)
        logger.info(
            "Cache stored key=%s (ttl=%ss, fetch=%dms)",
            key,
            self._default_ttl if ttl is None else ttl,
            fetch_ms,
        )
        return value

    async def _run_on_miss(self, key: str, on_miss: Callable[[], Any]) -> None:
        try:
            result = on_miss()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Cache miss hook failed for key=%s", key)

    async def drain(self) -> None:
        """Wait until every scheduled ``on_miss`` hook has returned."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def invalidate(self, key_or_pattern: str | None = None) -> int:
        """Drop one key, every key matching a ``*`` glob, or everything.

        Clearing everything also resets the hit/miss counters.

        Returns:
            Number of entries removed.
        """
        if not key_or_pattern:
            removed = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            logger.info("Cleared entire cache (%d entries)", removed)
            return removed

        if "*" in key_or_pattern:
            regex = _glob_to_regex(key_or_pattern)
            doomed = [k for k in self._entries if regex.fullmatch(k)]
            for k in doomed:
                del self._entries[k]
            logger.info(
                "Cleared %d cache entries matching %s", len(doomed), key_or_pattern
            )
            return len(doomed)

        removed = 1 if self._entries.pop(key_or_pattern, None) is not None else 0
        logger.info("Cleared cache key %s (removed=%d)", key_or_pattern, removed)
        return removed

    def stats(self) -> CacheStats:
        return CacheStats(
            hit_count=self._hits,
            miss_count=self._misses,
            keys=set(self._entries),
        )

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        self._last_sweep = now
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def _maybe_sweep(self, now: float) -> None:
        if self._check_period and now - self._last_sweep >= self._check_period:
            self.purge_expired()
