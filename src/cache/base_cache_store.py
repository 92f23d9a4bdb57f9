# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

A store holds the entries of one namespace (validation or context).
TTL policy lives in ComputeCache; stores only compare timestamps.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from depcontext.cache.models import CacheEntry, CacheStats


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key string."""

    @abstractmethod
    async def put(self, entry: CacheEntry) -> CacheEntry:
        """Upsert entry. On overwrite only ``updated_at`` and the payload change."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""

    @abstractmethod
    async def delete_user(self, user_id: str) -> int:
        """Remove every entry of ``user_id``. Returns the count removed."""

    @abstractmethod
    async def purge_expired(self, cutoff: datetime) -> int:
        """Remove entries last written before ``cutoff``. Returns the count."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all entries in this namespace."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove all entries in this namespace. Returns the count."""

    async def user_entries(self, user_id: str) -> list[CacheEntry]:
        """Entries belonging to ``user_id``."""
        return [e for e in await self.list_entries() if e.user_id == user_id]

    async def stats(self, now: datetime | None = None) -> CacheStats:
        """Summarise this namespace (entry counts, ages, cached tokens)."""
        now = now or datetime.now(timezone.utc)
        entries = await self.list_entries()
        if not entries:
            return CacheStats(namespace=self.namespace)

        ages = [(now - e.updated_at).total_seconds() for e in entries]
        return CacheStats(
            namespace=self.namespace,
            total_entries=len(entries),
            unique_users=len({e.user_id for e in entries}),
            unique_resources=len({e.resource_id for e in entries}),
            avg_age_seconds=sum(ages) / len(ages),
            oldest_entry=min(e.created_at for e in entries),
            newest_entry=max(e.created_at for e in entries),
            total_tokens_cached=sum(
                int(e.metadata.get("total_tokens", 0)) for e in entries
            ),
        )
