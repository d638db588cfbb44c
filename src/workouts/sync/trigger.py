"""Fire-and-forget backfill trigger.

Passed as the ``on_miss`` hook to ``TTLCache.read_through`` for the cache keys
whose staleness should provoke a sync (first-page listings and aggregate
stats).  The read that discovered the miss never waits for the run and never
sees its outcome; results and errors only reach the logs.

Concurrent misses are not deduplicated: two near-simultaneous misses start
two runs, which the store's conditional inserts make safe.
"""

from __future__ import annotations

import asyncio
import logging

from src.workouts.sync.backfill import BackfillResult, BackfillSynchronizer

logger = logging.getLogger("logbook.workouts.sync.trigger")


class SynchronizationTrigger:
    """Schedule backfill runs as background tasks on the running event loop."""

    def __init__(self, synchronizer: BackfillSynchronizer) -> None:
        self._synchronizer = synchronizer
        # Strong references so in-flight runs are not garbage collected
        self._tasks: set[asyncio.Task] = set()
        self.runs_started = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def fire_and_forget(self) -> asyncio.Task:
        """Schedule exactly one backfill run and return immediately.

        Must be called from inside a running event loop.  The returned task
        is for observation only; callers are not expected to await it.
        """
        task = asyncio.get_running_loop().create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.runs_started += 1
        logger.info("Triggered background backfill (non-blocking)")
        return task

    async def _run(self) -> BackfillResult | None:
        logger.info("Background backfill started")
        try:
            result = await self._synchronizer.run()
        except Exception:
            logger.exception("Background backfill error")
            return None
        if result.error:
            logger.error("Background backfill failed: %s", result.error)
        else:
            logger.info("Background backfill completed: %s", result.to_dict())
        return result

    async def wait_idle(self) -> None:
        """Wait for every in-flight run to finish (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
