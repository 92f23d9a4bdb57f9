# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from depcontext.cache.base_cache_store import BaseCacheStore
from depcontext.config.settings import Settings

VALIDATION_NAMESPACE = "validation"
CONTEXT_NAMESPACE = "context"


def create_cache_store(
    namespace: str,
    settings: Settings | None = None,
) -> BaseCacheStore:
    """Instantiate the configured cache backend for one namespace.

    Args:
        namespace: Cache namespace (``validation`` or ``context``).
        settings: Application settings. Defaults to the memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from depcontext.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore(namespace=namespace)

    if backend == "sqlite":
        from depcontext.cache.sqlite_store import SqliteCacheStore
        db_path = settings.cache_root.expanduser() / "depcontext_cache.db"
        return SqliteCacheStore(db_path=db_path, namespace=namespace)

    if backend == "redis":
        from depcontext.cache.redis_store import RedisCacheStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(
            redis_url=settings.cache_redis_url,
            namespace=namespace,
            ttl_seconds=settings.cache_ttl_seconds,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
