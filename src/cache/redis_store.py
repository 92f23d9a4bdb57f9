# src/cache/redis_store.py — v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments. Entries are written with a
native expiry equal to the cache TTL; the index hash (key -> user id)
and the per-user sets are pruned lazily by ``purge_expired``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from depcontext.cache.base_cache_store import BaseCacheStore
from depcontext.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "depcontext:cache:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(
        self,
        redis_url: str,
        namespace: str,
        ttl_seconds: int = 24 * 60 * 60,
    ) -> None:
        super().__init__(namespace)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._ttl_seconds = ttl_seconds
        self._prefix = f"{_KEY_PREFIX}{namespace}:"
        self._index_key = f"{self._prefix}__index__"

    async def get(self, key: str) -> CacheEntry | None:
        data = self._client.get(self._entry_key(key))
        if data is None:
            return None
        try:
            return CacheEntry(**json.loads(data))
        except Exception as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> CacheEntry:
        key = entry.key.as_str()
        existing = await self.get(key)
        if existing is not None:
            entry = entry.model_copy(update={"created_at": existing.created_at})
        self._client.set(
            self._entry_key(key), entry.model_dump_json(), ex=self._ttl_seconds
        )
        # Index hash (key -> user id) backs list_entries, purge and clear
        self._client.hset(self._index_key, key, entry.user_id)
        self._client.sadd(self._user_key(entry.user_id), key)
        return entry

    async def delete(self, key: str) -> bool:
        user_id = self._client.hget(self._index_key, key)
        removed = self._client.delete(self._entry_key(key))
        self._unindex(key, user_id)
        return bool(removed)

    async def delete_user(self, user_id: str) -> int:
        user_key = self._user_key(user_id)
        keys = list(self._client.smembers(user_key))
        removed = 0
        if keys:
            removed = self._client.delete(*[self._entry_key(k) for k in keys])
            self._client.hdel(self._index_key, *keys)
        self._client.delete(user_key)
        return int(removed)

    async def purge_expired(self, cutoff: datetime) -> int:
        purged = 0
        for key, user_id in self._client.hgetall(self._index_key).items():
            entry = await self.get(key)
            if entry is None:
                # Expired natively; drop the dangling index members.
                self._unindex(key, user_id)
                purged += 1
            elif entry.updated_at < cutoff:
                await self.delete(key)
                purged += 1
        return purged

    async def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for key in self._client.hkeys(self._index_key):
            entry = await self.get(key)
            if entry is not None:
                entries.append(entry)
        return entries

    async def clear(self) -> int:
        index = self._client.hgetall(self._index_key)
        removed = 0
        if index:
            removed = self._client.delete(*[self._entry_key(k) for k in index])
        for user_id in set(index.values()):
            self._client.delete(self._user_key(user_id))
        self._client.delete(self._index_key)
        return int(removed)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    def _unindex(self, key: str, user_id: str | None) -> None:
        self._client.hdel(self._index_key, key)
        if user_id is not None:
            self._client.srem(self._user_key(user_id), key)

    def _entry_key(self, key: str) -> str:
        return f"{self._prefix}entry:{key}"

    def _user_key(self, user_id: str) -> str:
        return f"{self._prefix}user:{user_id}"
