# src/cache/models.py — v3
"""Cache domain models: CacheKey, CacheEntry, CacheStats, UserCacheHealth."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheKey(BaseModel):
    """Identity of a cached computation: who, what, and which resource set."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    resource_id: str
    fingerprint: str

    def as_str(self) -> str:
        """Store key: SHA-256 of the JSON-encoded triple, unambiguous for any ids."""
        triple = json.dumps([self.user_id, self.resource_id, self.fingerprint])
        return hashlib.sha256(triple.encode("utf-8")).hexdigest()


class CacheEntry(BaseModel):
    """Single cached payload (ValidationResult or AggregatedContext as JSON)."""

    namespace: str
    user_id: str
    resource_id: str
    fingerprint: str
    payload: dict[str, Any]
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> CacheKey:
        return CacheKey(
            user_id=self.user_id,
            resource_id=self.resource_id,
            fingerprint=self.fingerprint,
        )

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """TTL is measured from the last write."""
        return self.updated_at + ttl <= now


class CacheStats(BaseModel):
    """Aggregate health of one cache namespace."""

    namespace: str
    total_entries: int = 0
    unique_users: int = 0
    unique_resources: int = 0
    avg_age_seconds: float | None = None
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
    total_tokens_cached: int = 0


class UserCacheHealth(BaseModel):
    """Per-user cache footprint across namespaces."""

    user_id: str
    entries: dict[str, int] = Field(default_factory=dict)
    last_write: dict[str, datetime | None] = Field(default_factory=dict)
