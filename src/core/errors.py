# src/core/errors.py — v1
"""Error taxonomy shared by catalog, graph, context and cache modules."""

from __future__ import annotations


class DepContextError(Exception):
    """Base class for all depcontext errors."""


class CatalogError(DepContextError):
    """Raised when resource definitions are malformed (duplicates, self-edges)."""


class GraphCycleError(CatalogError):
    """Raised when the dependency relation contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Cycle detected in resource dependencies: {' -> '.join(cycle)}")


class UnknownResourceError(DepContextError):
    """Raised when a resource id is not declared in the catalog."""

    def __init__(self, resource_id: str, referenced_by: str | None = None) -> None:
        self.resource_id = resource_id
        self.referenced_by = referenced_by
        if referenced_by:
            msg = f"Resource '{referenced_by}' depends on unknown resource '{resource_id}'"
        else:
            msg = f"Unknown resource: '{resource_id}'"
        super().__init__(msg)


class TokenBudgetExceededError(DepContextError):
    """Raised when a tier budget cannot hold any content (zero or negative)."""

    def __init__(self, tier: str, budget: int) -> None:
        self.tier = tier
        self.budget = budget
        super().__init__(f"Token budget for {tier} must be positive, got {budget}")


class CacheComputeError(DepContextError):
    """Raised to every waiter when the computation behind a cache key fails."""

    def __init__(self, key: str, cause: BaseException) -> None:
        self.key = key
        super().__init__(f"Computation failed for cache key {key!r}: {cause}")
