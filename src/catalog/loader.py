# src/catalog/loader.py — v1
"""Catalog loaders: JSON file, plain dicts, and the built-in registry.

Accepted JSON layouts::

    [{"resource_id": "a", "category": "...", "dependencies": [...]}, ...]
    {"resources": [...]}

A dependency may be a full object ``{"resource_id": "a", "kind": "..."}``
or a bare id string (treated as a prerequisite).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from depcontext.catalog.catalog import ResourceCatalog
from depcontext.catalog.models import DependencyKind, ResourceDefinition
from depcontext.config.resources import DEFAULT_RESOURCES
from depcontext.core.errors import CatalogError

logger = logging.getLogger(__name__)


def catalog_from_dicts(
    items: Iterable[Mapping[str, Any]],
    default_cost: float = 1.0,
) -> ResourceCatalog:
    """Build a catalog from raw mappings.

    Raises:
        CatalogError: If an item does not match the ResourceDefinition schema.
    """
    definitions: list[ResourceDefinition] = []
    for position, item in enumerate(items):
        data = dict(item)
        data["dependencies"] = [
            {"resource_id": dep, "kind": DependencyKind.PREREQUISITE}
            if isinstance(dep, str) else dep
            for dep in data.get("dependencies", [])
        ]
        try:
            definitions.append(ResourceDefinition(**data))
        except ValidationError as e:
            raise CatalogError(
                f"Invalid resource definition at position {position}: {e}"
            ) from e
    return ResourceCatalog(definitions, default_cost=default_cost)


def load_catalog(path: Path | str, default_cost: float = 1.0) -> ResourceCatalog:
    """Load and validate a catalog from a JSON file.

    Raises:
        CatalogError: Unreadable file or malformed content.
        GraphCycleError: The declared dependencies contain a cycle.
        UnknownResourceError: A dependency references an undeclared id.
    """
    path = Path(path).expanduser()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("resources")
    if not isinstance(data, list):
        raise CatalogError(f"Catalog {path} must contain a list of resources")

    logger.debug("Loading catalog from %s (%d entries)", path, len(data))
    return catalog_from_dicts(data, default_cost=default_cost)


def default_catalog(default_cost: float = 1.0) -> ResourceCatalog:
    """Catalog built from the declarative registry in config/resources.py."""
    items = [
        {
            "resource_id": rid,
            "category": category,
            "title": title,
            "estimated_cost": cost,
            "dependencies": [
                {"resource_id": dep_id, "kind": kind} for dep_id, kind in deps
            ],
        }
        for rid, category, title, cost, deps in DEFAULT_RESOURCES
    ]
    return catalog_from_dicts(items, default_cost=default_cost)
