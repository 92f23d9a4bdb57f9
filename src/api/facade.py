# src/api/facade.py — v2
"""Public API facade: validation and context aggregation behind the cache.

Usage:
    from depcontext.api.facade import ResourceContextService

    async with ResourceContextService(catalog, settings) as service:
        result = await service.validate(user_id, "sales-messaging", snapshot)
        if result.valid:
            context = await service.aggregate(
                user_id, "sales-messaging", snapshot, contents,
            )
        ...
        await service.on_resource_generated(user_id)

Flow per request: fingerprint the snapshot, look up (user, resource,
fingerprint) in the namespace cache, and on a miss run the CPU-bound
computation on a worker thread, bounded by ``compute_max_workers``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import timedelta
from typing import Any, TypeVar

from depcontext.cache.cache_factory import (
    CONTEXT_NAMESPACE,
    VALIDATION_NAMESPACE,
    create_cache_store,
)
from depcontext.cache.compute_cache import ComputeCache
from depcontext.cache.fingerprint import compute_fingerprint
from depcontext.cache.invalidation import InvalidationHook
from depcontext.cache.models import CacheKey, CacheStats, UserCacheHealth
from depcontext.cache.reaper import CacheReaper
from depcontext.catalog.catalog import ResourceCatalog
from depcontext.config.settings import Settings
from depcontext.context.aggregator import ContentLookup, ContentValue, ContextAggregator
from depcontext.context.models import AggregatedContext
from depcontext.context.tokenizer import CharRatioTokenizer, Tokenizer
from depcontext.graph.models import ValidationResult
from depcontext.graph.resource_graph import ResourceGraph
from depcontext.graph.validator import DependencyValidator
from depcontext.logging.context import request_context

logger = logging.getLogger(__name__)

R = TypeVar("R")


def _describe_context(context: AggregatedContext) -> dict[str, Any]:
    counts = context.token_counts
    return {
        "total_tokens": counts.total,
        "tier_breakdown": {"tier1": counts.tier1, "tier2": counts.tier2, "tier3": counts.tier3},
        "aggregation_ms": context.aggregation_ms,
    }


def as_lookup(contents: Mapping[str, ContentValue] | ContentLookup) -> ContentLookup:
    """Accept either a mapping of id -> content or a lookup callable."""
    if isinstance(contents, Mapping):
        return contents.get
    return contents


class ResourceContextService:
    """Cached dependency validation and context aggregation for one catalog.

    Args:
        catalog: Validated resource catalog.
        settings: Application settings. Loaded from .env if None.
        validation_cache: Override for the validation cache (tests, custom stores).
        context_cache: Override for the context cache.
        tokenizer: Token estimator; defaults to the configured chars/token ratio.
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        settings: Settings | None = None,
        validation_cache: ComputeCache[ValidationResult] | None = None,
        context_cache: ComputeCache[AggregatedContext] | None = None,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._catalog = catalog
        self._graph = ResourceGraph(catalog)
        self._validator = DependencyValidator(self._graph)
        self._aggregator = ContextAggregator(
            catalog,
            budgets=self._settings.tier_budgets,
            tokenizer=tokenizer or CharRatioTokenizer(self._settings.chars_per_token),
            min_fragment_tokens=self._settings.min_fragment_tokens,
        )

        ttl = timedelta(seconds=self._settings.cache_ttl_seconds)
        self._validation_cache = validation_cache or ComputeCache(
            create_cache_store(VALIDATION_NAMESPACE, self._settings),
            ValidationResult,
            ttl=ttl,
        )
        self._context_cache = context_cache or ComputeCache(
            create_cache_store(CONTEXT_NAMESPACE, self._settings),
            AggregatedContext,
            ttl=ttl,
            describe=_describe_context,
        )
        caches = [self._validation_cache, self._context_cache]
        self._invalidation = InvalidationHook(caches)
        self._reaper = CacheReaper(caches, self._settings.cache_reaper_interval_seconds)
        self._workers = asyncio.Semaphore(self._settings.compute_max_workers)

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start the background TTL reaper."""
        if self._settings.cache_enabled:
            self._reaper.start()

    async def stop(self) -> None:
        await self._reaper.stop()

    async def __aenter__(self) -> ResourceContextService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def catalog(self) -> ResourceCatalog:
        return self._catalog

    @property
    def graph(self) -> ResourceGraph:
        return self._graph

    @property
    def reaper(self) -> CacheReaper:
        return self._reaper

    # --- Operations ---

    async def validate(
        self,
        user_id: str,
        target_resource_id: str,
        user_resource_set: Iterable[str],
    ) -> ValidationResult:
        """Can ``target_resource_id`` be generated now for ``user_id``?

        Raises:
            UnknownResourceError: Target not in the catalog (before any caching).
            CacheComputeError: Validation failed inside the cache.
        """
        self._catalog.get(target_resource_id)
        snapshot = frozenset(user_resource_set)
        fingerprint = compute_fingerprint(snapshot)

        with request_context("validate", user_id, target_resource_id, fingerprint):
            return await self._cached(
                self._validation_cache,
                CacheKey(user_id=user_id, resource_id=target_resource_id, fingerprint=fingerprint),
                lambda: self._validator.validate(user_id, target_resource_id, snapshot),
            )

    async def aggregate(
        self,
        user_id: str,
        target_resource_id: str,
        user_resource_set: Iterable[str],
        contents: Mapping[str, ContentValue] | ContentLookup,
    ) -> AggregatedContext:
        """Tiered prompt context for ``target_resource_id``.

        Raises:
            UnknownResourceError: Target not in the catalog (before any caching).
            CacheComputeError: Aggregation or content lookup failed.
        """
        self._catalog.get(target_resource_id)
        snapshot = frozenset(user_resource_set)
        fingerprint = compute_fingerprint(snapshot)
        lookup = as_lookup(contents)

        with request_context("aggregate", user_id, target_resource_id, fingerprint):
            return await self._cached(
                self._context_cache,
                CacheKey(user_id=user_id, resource_id=target_resource_id, fingerprint=fingerprint),
                lambda: self._aggregator.aggregate(
                    user_id, target_resource_id, snapshot, lookup
                ),
            )

    async def on_resource_generated(self, user_id: str) -> int:
        """Invalidation hook: call after a resource is durably recorded."""
        with request_context("invalidate", user_id):
            return await self._invalidation.on_resource_generated(user_id)

    async def warm(
        self,
        user_id: str,
        user_resource_set: Iterable[str],
        contents: Mapping[str, ContentValue] | ContentLookup,
    ) -> list[str]:
        """Pre-compute validation and context for the resources unlockable next.

        Failures are logged per resource and do not stop the others.

        Returns:
            Resource ids that were warmed successfully.
        """
        snapshot = frozenset(user_resource_set)
        candidates = self._graph.unlockable(snapshot)

        async def _warm_one(resource_id: str) -> str:
            await self.validate(user_id, resource_id, snapshot)
            await self.aggregate(user_id, resource_id, snapshot, contents)
            return resource_id

        outcomes = await asyncio.gather(
            *(_warm_one(rid) for rid in candidates), return_exceptions=True
        )
        warmed: list[str] = []
        for resource_id, outcome in zip(candidates, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Cache warming failed for %s (user %s): %s",
                               resource_id, user_id, outcome)
            else:
                warmed.append(resource_id)
        logger.info("Warmed %d/%d next resources for user %s",
                    len(warmed), len(candidates), user_id)
        return warmed

    async def stats(self) -> list[CacheStats]:
        """Health summary of both caches."""
        return [await self._validation_cache.stats(), await self._context_cache.stats()]

    async def user_health(self, user_id: str) -> UserCacheHealth:
        """Per-user entry counts and last write times across both caches."""
        health = UserCacheHealth(user_id=user_id)
        for cache in (self._validation_cache, self._context_cache):
            part = await cache.user_health(user_id)
            health.entries.update(part.entries)
            health.last_write.update(part.last_write)
        return health

    async def flush(self) -> int:
        """Drop every cached entry (e.g. after a catalog reload)."""
        return await self._validation_cache.clear() + await self._context_cache.clear()

    # --- Internals ---

    async def _cached(
        self,
        cache: ComputeCache,
        key: CacheKey,
        fn: Callable[[], R],
    ) -> R:
        if not self._settings.cache_enabled:
            return await self._run_bounded(fn)
        return await cache.get_or_compute(key, lambda: self._run_bounded(fn))

    async def _run_bounded(self, fn: Callable[[], R]) -> R:
        async with self._workers:
            return await asyncio.to_thread(fn)
