# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Both namespaces may share
one database file; every query is scoped by the namespace column.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from depcontext.cache.base_cache_store import BaseCacheStore
from depcontext.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    user_id TEXT NOT NULL,
    resource_id TEXT NOT NULL,
    fingerprint TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL,
    PRIMARY KEY (namespace, key)
);
CREATE INDEX IF NOT EXISTS idx_cache_user ON cache_entries(namespace, user_id);
CREATE INDEX IF NOT EXISTS idx_cache_updated ON cache_entries(namespace, updated_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store; survives process restarts."""

    def __init__(self, db_path: Path | str, namespace: str) -> None:
        super().__init__(namespace)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM cache_entries WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            ).fetchone()
        if row is None:
            return None
        try:
            return CacheEntry(**json.loads(row[0]))
        except Exception as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> CacheEntry:
        key = entry.key.as_str()
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM cache_entries WHERE namespace = ? AND key = ?",
                (self.namespace, key),
            ).fetchone()
            if row is not None:
                created = CacheEntry(**json.loads(row[0])).created_at
                entry = entry.model_copy(update={"created_at": created})
            self._conn.execute(
                """INSERT INTO cache_entries
                   (namespace, key, user_id, resource_id, fingerprint, data,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(namespace, key) DO UPDATE SET
                       data = excluded.data,
                       updated_at = excluded.updated_at""",
                (
                    self.namespace,
                    key,
                    entry.user_id,
                    entry.resource_id,
                    entry.fingerprint,
                    entry.model_dump_json(),
                    entry.created_at.timestamp(),
                    entry.updated_at.timestamp(),
                ),
            )
            self._conn.commit()
        return entry

    async def delete(self, key: str) -> bool:
        return self._execute_delete("key = ?", (key,)) > 0

    async def delete_user(self, user_id: str) -> int:
        return self._execute_delete("user_id = ?", (user_id,))

    async def purge_expired(self, cutoff: datetime) -> int:
        return self._execute_delete("updated_at < ?", (cutoff.timestamp(),))

    async def list_entries(self) -> list[CacheEntry]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT data FROM cache_entries WHERE namespace = ?",
                (self.namespace,),
            ).fetchall()
        entries: list[CacheEntry] = []
        for (data,) in rows:
            try:
                entries.append(CacheEntry(**json.loads(data)))
            except Exception as e:
                logger.warning("Skipping unreadable cache row: %s", e)
        return entries

    async def clear(self) -> int:
        return self._execute_delete("1 = 1", ())

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _execute_delete(self, condition: str, params: tuple) -> int:
        with self._lock:
            cursor = self._conn.execute(
                f"DELETE FROM cache_entries WHERE namespace = ? AND {condition}",  # noqa: S608
                (self.namespace, *params),
            )
            self._conn.commit()
            return cursor.rowcount
