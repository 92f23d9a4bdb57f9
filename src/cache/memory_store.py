# src/cache/memory_store.py — v1
"""In-process cache store (default CACHE_BACKEND=memory).

Entries live in a dict guarded by a lock. The lock is held for the whole
of a purge sweep and only briefly for single-key operations.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from depcontext.cache.base_cache_store import BaseCacheStore
from depcontext.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache store with a per-user key index."""

    def __init__(self, namespace: str) -> None:
        super().__init__(namespace)
        self._entries: dict[str, CacheEntry] = {}
        self._by_user: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    async def put(self, entry: CacheEntry) -> CacheEntry:
        key = entry.key.as_str()
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                entry = entry.model_copy(update={"created_at": existing.created_at})
            self._entries[key] = entry
            self._by_user.setdefault(entry.user_id, set()).add(key)
        return entry

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    async def delete_user(self, user_id: str) -> int:
        with self._lock:
            keys = self._by_user.pop(user_id, set())
            for key in keys:
                self._entries.pop(key, None)
            return len(keys)

    async def purge_expired(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.updated_at < cutoff]
            for key in expired:
                self._remove(key)
        if expired:
            logger.debug("Purged %d expired entries from %s", len(expired), self.namespace)
        return len(expired)

    async def list_entries(self) -> list[CacheEntry]:
        with self._lock:
            return list(self._entries.values())

    async def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._by_user.clear()
            return count

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        keys = self._by_user.get(entry.user_id)
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._by_user[entry.user_id]
        return True
