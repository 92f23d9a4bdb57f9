# src/cache/compute_cache.py — v3
"""Get-or-compute cache with TTL expiry and stampede protection.

Entry lifecycle: Absent -> Computing -> Cached -> (Expired | Invalidated)
-> Absent. At most one computation per key is in flight; concurrent
callers await the same task. Callers are shielded from each other: a
cancelled caller stops waiting, but the computation still completes and
its result is cached for the next caller. Invalidating a user marks
that user's in-flight computations stale: they still answer their
waiters but are not stored. No per-user state outlives a computation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from depcontext.cache.base_cache_store import BaseCacheStore
from depcontext.cache.models import CacheEntry, CacheKey, CacheStats, UserCacheHealth
from depcontext.core.errors import CacheComputeError
from depcontext.tracking import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_TTL = timedelta(hours=24)


@dataclass
class _Flight:
    """One in-flight computation for a cache key."""

    user_id: str
    task: asyncio.Task[Any] | None = None
    stale: bool = False


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ComputeCache(Generic[T]):
    """Typed get-or-compute facade over a BaseCacheStore.

    Args:
        store: Backend holding the entries of this namespace.
        model: Pydantic model the payload is (de)serialised as.
        ttl: Lifetime of an entry, measured from its last write.
        describe: Optional callable producing monitoring metadata for a value.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        store: BaseCacheStore,
        model: type[T],
        ttl: timedelta = DEFAULT_TTL,
        describe: Callable[[T], dict[str, Any]] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._model = model
        self._ttl = ttl
        self._describe = describe
        self._clock = clock
        self._inflight: dict[str, _Flight] = {}

    @property
    def namespace(self) -> str:
        return self._store.namespace

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def inflight_count(self) -> int:
        return len(self._inflight)

    async def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value for ``key`` or compute it exactly once.

        Raises:
            CacheComputeError: ``compute`` failed. Every caller waiting on
                the same key receives it; the key is released so the next
                call retries.
        """
        k = key.as_str()
        flight = self._inflight.get(k)
        if flight is None:
            cached = await self._lookup(k)
            if cached is not None:
                metrics.CACHE_REQUESTS.labels(self.namespace, "hit").inc()
                return cached
            # Another caller may have started while the store was queried.
            flight = self._inflight.get(k)

        if flight is None:
            metrics.CACHE_REQUESTS.labels(self.namespace, "miss").inc()
            flight = _Flight(user_id=key.user_id)
            flight.task = asyncio.create_task(self._compute_and_store(key, compute, flight))
            self._inflight[k] = flight
            flight.task.add_done_callback(lambda t, k=k: self._release(k, t))
        else:
            metrics.CACHE_REQUESTS.labels(self.namespace, "coalesced").inc()
            logger.debug("Joining in-flight computation for %s/%s", self.namespace, k)

        return await asyncio.shield(flight.task)

    async def peek(self, key: CacheKey) -> T | None:
        """Return the cached value without computing or recording metrics."""
        return await self._lookup(key.as_str(), record=False)

    async def invalidate_user(self, user_id: str) -> int:
        """Drop every entry of ``user_id``. Idempotent.

        Computations for the user already in flight still answer their
        waiters but are not stored.
        """
        for flight in self._inflight.values():
            if flight.user_id == user_id:
                flight.stale = True
        removed = await self._store.delete_user(user_id)
        if removed:
            metrics.INVALIDATED_ENTRIES.labels(self.namespace).inc(removed)
        return removed

    async def purge_expired(self) -> int:
        """Remove entries older than the TTL. Returns the count."""
        return await self._store.purge_expired(self._clock() - self._ttl)

    async def clear(self) -> int:
        return await self._store.clear()

    async def stats(self) -> CacheStats:
        return await self._store.stats(now=self._clock())

    async def user_health(self, user_id: str) -> UserCacheHealth:
        entries = await self._store.user_entries(user_id)
        return UserCacheHealth(
            user_id=user_id,
            entries={self.namespace: len(entries)},
            last_write={
                self.namespace: max((e.updated_at for e in entries), default=None)
            },
        )

    # --- Internals ---

    async def _lookup(self, k: str, record: bool = True) -> T | None:
        entry = await self._store.get(k)
        if entry is None:
            return None
        if entry.is_expired(self._clock(), self._ttl):
            await self._store.delete(k)
            if record:
                metrics.CACHE_REQUESTS.labels(self.namespace, "expired").inc()
            return None
        try:
            return self._model.model_validate(entry.payload)
        except Exception as e:
            logger.warning("Discarding unreadable %s entry %s: %s", self.namespace, k, e)
            await self._store.delete(k)
            return None

    async def _compute_and_store(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[T]],
        flight: _Flight,
    ) -> T:
        k = key.as_str()
        gauge = metrics.INFLIGHT_COMPUTATIONS.labels(self.namespace)
        gauge.inc()
        started = time.perf_counter()
        try:
            value = await compute()
        except Exception as e:
            metrics.COMPUTE_ERRORS.labels(self.namespace).inc()
            logger.warning("Computation failed for %s/%s: %s", self.namespace, k, e)
            raise CacheComputeError(k, e) from e
        finally:
            gauge.dec()
            metrics.COMPUTE_DURATION.labels(self.namespace).observe(
                time.perf_counter() - started
            )

        if flight.stale:
            logger.debug("User %s invalidated during computation; not caching %s", key.user_id, k)
            return value

        now = self._clock()
        entry = CacheEntry(
            namespace=self.namespace,
            user_id=key.user_id,
            resource_id=key.resource_id,
            fingerprint=key.fingerprint,
            payload=value.model_dump(mode="json"),
            metadata=self._describe(value) if self._describe else {},
            created_at=now,
            updated_at=now,
        )
        try:
            await self._store.put(entry)
        except Exception:
            # A failed write only costs a future recomputation.
            logger.exception("Failed to store %s entry %s", self.namespace, k)
        return value

    def _release(self, k: str, task: asyncio.Task[T]) -> None:
        flight = self._inflight.get(k)
        if flight is not None and flight.task is task:
            del self._inflight[k]
        if not task.cancelled():
            task.exception()  # mark retrieved when nobody is waiting any more
