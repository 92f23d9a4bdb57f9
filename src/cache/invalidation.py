# src/cache/invalidation.py — v1
"""Invalidation hook fired when a user's resource set changes.

Called by the generation service right after a resource is durably
recorded. Invalidation is coarse: every entry of the user goes, in every
registered cache. The new fingerprint would miss those entries anyway;
removing them frees memory before the TTL would.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from depcontext.cache.compute_cache import ComputeCache

logger = logging.getLogger(__name__)


class InvalidationHook:
    """Delete a user's entries across caches. Safe to call redundantly."""

    def __init__(self, caches: Iterable[ComputeCache]) -> None:
        self._caches = list(caches)

    async def on_resource_generated(self, user_id: str) -> int:
        """Invalidate all cached results of ``user_id``.

        Returns:
            Number of entries removed across all caches.
        """
        total = 0
        for cache in self._caches:
            total += await cache.invalidate_user(user_id)
        logger.info("Invalidated %d cache entries for user %s", total, user_id)
        return total
