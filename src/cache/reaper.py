# src/cache/reaper.py — v1
"""Background TTL reaper.

Runs on a fixed interval independent of request traffic. A failing sweep
is logged and counted; serving continues with the entries as they are.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable

from depcontext.cache.compute_cache import ComputeCache
from depcontext.tracking import metrics

logger = logging.getLogger(__name__)


class CacheReaper:
    """Periodically purge expired entries from a set of caches.

    Args:
        caches: Caches to sweep.
        interval_seconds: Delay between sweeps.
    """

    def __init__(self, caches: Iterable[ComputeCache], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._caches = list(caches)
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> int:
        """Purge every cache once. Returns the total count removed."""
        total = 0
        for cache in self._caches:
            try:
                removed = await cache.purge_expired()
            except Exception:
                metrics.REAPER_FAILURES.labels(cache.namespace).inc()
                logger.exception("Reaper sweep failed for %s cache", cache.namespace)
                continue
            if removed:
                metrics.REAPED_ENTRIES.labels(cache.namespace).inc(removed)
                logger.info("Reaped %d expired %s entries", removed, cache.namespace)
            total += removed
        return total

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="depcontext-cache-reaper")
        logger.debug("Cache reaper started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("Cache reaper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.sweep()
