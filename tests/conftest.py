# tests/conftest.py — v2
"""Shared test fixtures: small catalogs, content lookups, cache helpers.

No external services: Redis is mocked, SQLite uses tmp_path.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from depcontext.cache.compute_cache import ComputeCache
from depcontext.cache.memory_store import MemoryCacheStore
from depcontext.catalog.catalog import ResourceCatalog
from depcontext.catalog.loader import catalog_from_dicts
from depcontext.graph.models import ValidationResult


def make_catalog(*specs: tuple[str, list[tuple[str, str]]], cost: float | None = None) -> ResourceCatalog:
    """Build a catalog from (resource_id, [(dep_id, kind), ...]) tuples."""
    return catalog_from_dicts(
        [
            {
                "resource_id": rid,
                "category": "strategic_tools",
                "title": rid.upper(),
                "estimated_cost": cost,
                "dependencies": [{"resource_id": d, "kind": k} for d, k in deps],
            }
            for rid, deps in specs
        ]
    )


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# === FIXTURES: Catalogs ===


@pytest.fixture
def chain_catalog() -> ResourceCatalog:
    """B requires A."""
    return make_catalog(("A", []), ("B", [("A", "prerequisite")]))


@pytest.fixture
def mixed_catalog() -> ResourceCatalog:
    """C requires A, is enhanced by D, draws on E (data) and F (template)."""
    return make_catalog(
        ("A", []),
        ("D", []),
        ("E", []),
        ("F", []),
        (
            "C",
            [
                ("A", "prerequisite"),
                ("D", "context_enhancer"),
                ("E", "data_source"),
                ("F", "template_base"),
            ],
        ),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def validation_cache(clock: FakeClock) -> ComputeCache[ValidationResult]:
    return ComputeCache(
        MemoryCacheStore(namespace="validation"),
        ValidationResult,
        ttl=timedelta(hours=24),
        clock=clock,
    )
