# tests/unit/cache/test_compute_cache.py — v2
"""Tests for cache/compute_cache.py — hits, TTL, stampede protection."""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from depcontext.cache.compute_cache import ComputeCache
from depcontext.cache.memory_store import MemoryCacheStore
from depcontext.cache.models import CacheKey
from depcontext.core.errors import CacheComputeError
from depcontext.graph.models import ValidationResult

KEY = CacheKey(user_id="u1", resource_id="B", fingerprint="fp1")


def _result(valid: bool = True) -> ValidationResult:
    return ValidationResult(
        target_resource_id="B",
        valid=valid,
        missing_dependencies=[] if valid else ["A"],
        suggested_order=["B"] if valid else ["A", "B"],
        estimated_cost=1.0 if valid else 2.0,
    )


def _requests(outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "depcontext_cache_requests_total",
        {"namespace": "validation", "outcome": outcome},
    )
    return value or 0.0


class _Counting:
    """Compute function that counts calls and can be held open."""

    def __init__(self, result: ValidationResult | None = None, hold: bool = False) -> None:
        self.calls = 0
        self.result = result or _result()
        self.release = asyncio.Event()
        if not hold:
            self.release.set()

    async def __call__(self) -> ValidationResult:
        self.calls += 1
        await self.release.wait()
        return self.result


async def _drain(cache: ComputeCache) -> None:
    for _ in range(50):
        if cache.inflight_count() == 0:
            return
        await asyncio.sleep(0)


class TestGetOrCompute:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, validation_cache):
        compute = _Counting()
        hits = _requests("hit")
        first = await validation_cache.get_or_compute(KEY, compute)
        second = await validation_cache.get_or_compute(KEY, compute)
        assert compute.calls == 1
        assert first == second
        assert _requests("hit") == hits + 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, validation_cache):
        compute = _Counting()
        await validation_cache.get_or_compute(KEY, compute)
        other = CacheKey(user_id="u1", resource_id="B", fingerprint="fp2")
        await validation_cache.get_or_compute(other, compute)
        assert compute.calls == 2

    @pytest.mark.asyncio
    async def test_expired_entry_recomputed(self, validation_cache, clock):
        compute = _Counting()
        await validation_cache.get_or_compute(KEY, compute)
        clock.advance(hours=23)
        await validation_cache.get_or_compute(KEY, compute)
        assert compute.calls == 1
        clock.advance(hours=1)
        await validation_cache.get_or_compute(KEY, compute)
        assert compute.calls == 2

    @pytest.mark.asyncio
    async def test_peek(self, validation_cache):
        assert await validation_cache.peek(KEY) is None
        await validation_cache.get_or_compute(KEY, _Counting())
        assert (await validation_cache.peek(KEY)).valid is True

    @pytest.mark.asyncio
    async def test_unreadable_entry_discarded(self, validation_cache):
        await validation_cache.get_or_compute(KEY, _Counting())
        entry = await validation_cache.store.get(KEY.as_str())
        await validation_cache.store.put(entry.model_copy(update={"payload": {"bogus": 1}}))
        compute = _Counting()
        await validation_cache.get_or_compute(KEY, compute)
        assert compute.calls == 1


class TestStampedeProtection:
    @pytest.mark.asyncio
    async def test_concurrent_callers_compute_once(self, validation_cache):
        compute = _Counting(hold=True)
        callers = [
            asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
            for _ in range(20)
        ]
        await asyncio.sleep(0)
        assert validation_cache.inflight_count() == 1
        compute.release.set()
        results = await asyncio.gather(*callers)
        assert compute.calls == 1
        assert all(r is results[0] for r in results)
        await _drain(validation_cache)
        assert validation_cache.inflight_count() == 0

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter_and_releases_key(self, validation_cache):
        release = asyncio.Event()

        async def failing() -> ValidationResult:
            await release.wait()
            raise RuntimeError("boom")

        callers = [
            asyncio.create_task(validation_cache.get_or_compute(KEY, failing))
            for _ in range(5)
        ]
        await asyncio.sleep(0)
        release.set()
        outcomes = await asyncio.gather(*callers, return_exceptions=True)
        assert all(isinstance(o, CacheComputeError) for o in outcomes)
        assert isinstance(outcomes[0].__cause__, RuntimeError)
        assert outcomes[0].key == KEY.as_str()

        await _drain(validation_cache)
        assert validation_cache.inflight_count() == 0
        assert await validation_cache.peek(KEY) is None
        retry = await validation_cache.get_or_compute(KEY, _Counting())
        assert retry.valid is True

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_computation(self, validation_cache):
        compute = _Counting(hold=True)
        first = asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
        second = asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
        await asyncio.sleep(0)
        first.cancel()
        await asyncio.sleep(0)
        compute.release.set()

        assert (await second).valid is True
        with pytest.raises(asyncio.CancelledError):
            await first
        assert compute.calls == 1
        assert await validation_cache.peek(KEY) is not None

    @pytest.mark.asyncio
    async def test_result_stored_after_sole_caller_cancelled(self, validation_cache):
        compute = _Counting(hold=True)
        caller = asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
        await asyncio.sleep(0)
        caller.cancel()
        compute.release.set()
        await _drain(validation_cache)
        assert await validation_cache.peek(KEY) is not None


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_invalidate_user(self, validation_cache):
        await validation_cache.get_or_compute(KEY, _Counting())
        other = CacheKey(user_id="u2", resource_id="B", fingerprint="fp1")
        await validation_cache.get_or_compute(other, _Counting())

        assert await validation_cache.invalidate_user("u1") == 1
        assert await validation_cache.invalidate_user("u1") == 0
        assert await validation_cache.peek(KEY) is None
        assert await validation_cache.peek(other) is not None

    @pytest.mark.asyncio
    async def test_invalidation_during_computation_not_cached(self, validation_cache):
        compute = _Counting(hold=True)
        caller = asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
        await asyncio.sleep(0)
        await validation_cache.invalidate_user("u1")
        compute.release.set()

        assert (await caller).valid is True
        assert await validation_cache.peek(KEY) is None

    @pytest.mark.asyncio
    async def test_no_per_user_state_left_after_settling(self, validation_cache):
        for i in range(200):
            await validation_cache.invalidate_user(f"gone-{i}")

        compute = _Counting(hold=True)
        caller = asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
        await asyncio.sleep(0)
        await validation_cache.invalidate_user("u1")
        compute.release.set()
        await caller
        await _drain(validation_cache)

        leftovers = {
            name: value
            for name, value in vars(validation_cache).items()
            if isinstance(value, dict) and value
        }
        assert leftovers == {}
        assert await validation_cache.peek(KEY) is None

    @pytest.mark.asyncio
    async def test_invalidating_another_user_keeps_computation(self, validation_cache):
        compute = _Counting(hold=True)
        caller = asyncio.create_task(validation_cache.get_or_compute(KEY, compute))
        await asyncio.sleep(0)
        await validation_cache.invalidate_user("u2")
        compute.release.set()
        await caller

        assert await validation_cache.peek(KEY) is not None


class TestHousekeeping:
    @pytest.mark.asyncio
    async def test_purge_expired(self, validation_cache, clock):
        await validation_cache.get_or_compute(KEY, _Counting())
        clock.advance(hours=12)
        fresh = CacheKey(user_id="u1", resource_id="C", fingerprint="fp1")
        await validation_cache.get_or_compute(fresh, _Counting())
        clock.advance(hours=13)
        assert await validation_cache.purge_expired() == 1
        assert await validation_cache.peek(fresh) is not None

    @pytest.mark.asyncio
    async def test_user_health_and_stats(self, validation_cache, clock):
        await validation_cache.get_or_compute(KEY, _Counting())
        health = await validation_cache.user_health("u1")
        assert health.entries == {"validation": 1}
        assert health.last_write == {"validation": clock.now}

        stats = await validation_cache.stats()
        assert stats.namespace == "validation"
        assert stats.total_entries == 1

        assert await validation_cache.clear() == 1

    @pytest.mark.asyncio
    async def test_describe_metadata_stored(self, clock):
        cache = ComputeCache(
            MemoryCacheStore(namespace="context"),
            ValidationResult,
            describe=lambda value: {"total_tokens": 42},
            clock=clock,
        )
        await cache.get_or_compute(KEY, _Counting())
        entry = await cache.store.get(KEY.as_str())
        assert entry.metadata == {"total_tokens": 42}
        assert (await cache.stats()).total_tokens_cached == 42
