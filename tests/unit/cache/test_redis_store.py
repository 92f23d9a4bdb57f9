# tests/unit/cache/test_redis_store.py — v1
"""Tests for cache/redis_store.py — mocked Redis client."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from depcontext.cache.models import CacheEntry
from depcontext.cache.redis_store import RedisCacheStore

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _entry(user: str = "u1", resource: str = "r1", at: datetime = T0) -> CacheEntry:
    return CacheEntry(
        namespace="context",
        user_id=user,
        resource_id=resource,
        fingerprint="fp",
        payload={"ok": True},
        created_at=at,
        updated_at=at,
    )


def _mock_client() -> tuple[MagicMock, dict[str, str], dict[str, set[str]]]:
    """MagicMock Redis client backed by plain dicts."""
    strings: dict[str, str] = {}
    sets: dict[str, set[str]] = {}
    hashes: dict[str, dict[str, str]] = {}

    def delete(*keys):
        removed = 0
        for k in keys:
            if strings.pop(k, None) is not None:
                removed += 1
            sets.pop(k, None)
            hashes.pop(k, None)
        return removed

    def hdel(name, *fields):
        for f in fields:
            hashes.get(name, {}).pop(f, None)

    client = MagicMock()
    client.get = lambda k: strings.get(k)
    client.set = lambda k, v, ex=None: strings.__setitem__(k, v)
    client.delete = delete
    client.sadd = lambda k, *v: sets.setdefault(k, set()).update(v)
    client.srem = lambda k, *v: sets.get(k, set()).difference_update(v)
    client.smembers = lambda k: set(sets.get(k, set()))
    client.hset = lambda name, f, v: hashes.setdefault(name, {}).__setitem__(f, v)
    client.hget = lambda name, f: hashes.get(name, {}).get(f)
    client.hdel = hdel
    client.hgetall = lambda name: dict(hashes.get(name, {}))
    client.hkeys = lambda name: list(hashes.get(name, {}))
    return client, strings, sets


def _store(client: MagicMock) -> RedisCacheStore:
    store = RedisCacheStore.__new__(RedisCacheStore)
    store.namespace = "context"
    store._client = client
    store._ttl_seconds = 3600
    store._prefix = "depcontext:cache:context:"
    store._index_key = "depcontext:cache:context:__index__"
    return store


class TestRedisCacheStore:
    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        redis_mod = sys.modules.get("redis")
        sys.modules["redis"] = None  # type: ignore[assignment]
        try:
            with pytest.raises(ImportError, match="redis"):
                RedisCacheStore(redis_url="redis://localhost", namespace="context")
        finally:
            if redis_mod is not None:
                sys.modules["redis"] = redis_mod
            else:
                sys.modules.pop("redis", None)

    @pytest.mark.asyncio
    async def test_put_and_get(self):
        client, strings, _ = _mock_client()
        store = _store(client)
        entry = await store.put(_entry())
        assert f"depcontext:cache:context:entry:{entry.key.as_str()}" in strings
        result = await store.get(entry.key.as_str())
        assert result is not None
        assert result.payload == {"ok": True}

    @pytest.mark.asyncio
    async def test_put_sets_native_expiry(self):
        client = MagicMock()
        client.get.return_value = None
        store = _store(client)
        await store.put(_entry())
        assert client.set.call_args.kwargs["ex"] == 3600

    @pytest.mark.asyncio
    async def test_delete_user(self):
        client, _, _ = _mock_client()
        store = _store(client)
        await store.put(_entry(resource="r1"))
        await store.put(_entry(resource="r2"))
        await store.put(_entry(user="u2"))
        assert await store.delete_user("u1") == 2
        assert [e.user_id for e in await store.list_entries()] == ["u2"]

    @pytest.mark.asyncio
    async def test_purge_prunes_dangling_index(self):
        client, strings, sets = _mock_client()
        store = _store(client)
        entry = await store.put(_entry())
        # Simulate native expiry of the value.
        strings.clear()
        assert await store.purge_expired(T0) == 1
        assert client.hgetall("depcontext:cache:context:__index__") == {}
        assert sets["depcontext:cache:context:user:u1"] == set()

    @pytest.mark.asyncio
    async def test_purge_by_cutoff(self):
        client, _, _ = _mock_client()
        store = _store(client)
        await store.put(_entry(resource="old"))
        await store.put(_entry(resource="new", at=T0 + timedelta(hours=2)))
        assert await store.purge_expired(T0 + timedelta(hours=1)) == 1
        assert [e.resource_id for e in await store.list_entries()] == ["new"]

    @pytest.mark.asyncio
    async def test_clear(self):
        client, strings, sets = _mock_client()
        store = _store(client)
        await store.put(_entry(resource="r1"))
        await store.put(_entry(user="u2"))
        assert await store.clear() == 2
        assert strings == {}
        assert sets == {}
        assert await store.list_entries() == []

    @pytest.mark.asyncio
    async def test_colon_bearing_ids_stay_separate(self):
        client, strings, sets = _mock_client()
        store = _store(client)
        first = await store.put(_entry(user="a:b", resource="c"))
        second = await store.put(_entry(user="a", resource="b:c"))
        assert first.key.as_str() != second.key.as_str()
        assert len(strings) == 2

        strings.clear()
        assert await store.purge_expired(T0) == 2
        assert sets["depcontext:cache:context:user:a:b"] == set()
        assert sets["depcontext:cache:context:user:a"] == set()
