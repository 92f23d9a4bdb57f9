# src/catalog/catalog.py — v1
"""ResourceCatalog: read-only registry of resource definitions.

Definitions are validated once at construction. Duplicate ids,
self-dependencies, dangling references and cycles are rejected here so
that request-time code can rely on a well-formed DAG.

The backing graph is a NetworkX DiGraph whose edges point from a
dependency to its dependent (``dep -> resource``), so a topological sort
yields a valid generation order directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import networkx as nx

from depcontext.catalog.models import DependencyKind, ResourceDefinition
from depcontext.core.errors import CatalogError, GraphCycleError, UnknownResourceError

logger = logging.getLogger(__name__)


class ResourceCatalog:
    """Immutable registry mapping resource ids to their definitions.

    Args:
        definitions: Resource definitions in declaration order.
        default_cost: Cost used by ``cost_of`` when a definition has none.

    Raises:
        CatalogError: Duplicate id or self-dependency.
        UnknownResourceError: A dependency references an undeclared id.
        GraphCycleError: The dependency relation is not acyclic.
    """

    def __init__(
        self,
        definitions: Iterable[ResourceDefinition],
        default_cost: float = 1.0,
    ) -> None:
        self._definitions: dict[str, ResourceDefinition] = {}
        for definition in definitions:
            if definition.resource_id in self._definitions:
                raise CatalogError(
                    f"Duplicate resource definition: '{definition.resource_id}'"
                )
            self._definitions[definition.resource_id] = definition

        self._order: dict[str, int] = {
            rid: index for index, rid in enumerate(self._definitions)
        }
        self._default_cost = default_cost
        self._graph = self._build_graph()
        self._check_acyclic()

        logger.info(
            "Resource catalog loaded: %d resources, %d dependency edges",
            len(self._definitions),
            self._graph.number_of_edges(),
        )

    # --- Construction ---

    def _build_graph(self) -> nx.DiGraph:
        graph = nx.DiGraph()
        for rid in self._definitions:
            graph.add_node(rid)

        for rid, definition in self._definitions.items():
            seen: set[str] = set()
            for dep in definition.dependencies:
                if dep.resource_id == rid:
                    raise CatalogError(f"Resource '{rid}' depends on itself")
                if dep.resource_id not in self._definitions:
                    raise UnknownResourceError(dep.resource_id, referenced_by=rid)
                if dep.resource_id in seen:
                    raise CatalogError(
                        f"Resource '{rid}' declares '{dep.resource_id}' more than once"
                    )
                seen.add(dep.resource_id)
                graph.add_edge(dep.resource_id, rid, kind=dep.kind)
        return graph

    def _check_acyclic(self) -> None:
        try:
            edges = nx.find_cycle(self._graph)
        except nx.NetworkXNoCycle:
            return
        cycle = [u for u, _v in edges]
        cycle.append(cycle[0])
        raise GraphCycleError(cycle)

    # --- Lookup ---

    def get(self, resource_id: str) -> ResourceDefinition:
        """Return the definition for ``resource_id``.

        Raises:
            UnknownResourceError: If the id is not declared.
        """
        try:
            return self._definitions[resource_id]
        except KeyError:
            raise UnknownResourceError(resource_id) from None

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[ResourceDefinition]:
        return iter(self._definitions.values())

    @property
    def resource_ids(self) -> list[str]:
        """All resource ids in declaration order."""
        return list(self._definitions)

    @property
    def graph(self) -> nx.DiGraph:
        """Read-only view of the dependency graph (edges dep -> dependent)."""
        return self._graph.copy(as_view=True)

    def declaration_index(self, resource_id: str) -> int:
        """Position of ``resource_id`` in declaration order (tie-break key)."""
        try:
            return self._order[resource_id]
        except KeyError:
            raise UnknownResourceError(resource_id) from None

    def dependencies_of(
        self,
        resource_id: str,
        kinds: Iterable[DependencyKind] | None = None,
    ) -> list[str]:
        """Direct dependency ids of ``resource_id``, in declaration order.

        Args:
            resource_id: Resource to inspect.
            kinds: Restrict to these dependency kinds (all kinds if None).
        """
        definition = self.get(resource_id)
        allowed = set(kinds) if kinds is not None else None
        return [
            dep.resource_id
            for dep in definition.dependencies
            if allowed is None or dep.kind in allowed
        ]

    def dependents_of(self, resource_id: str) -> list[str]:
        """Resources that directly depend on ``resource_id``, in declaration order."""
        if resource_id not in self._definitions:
            raise UnknownResourceError(resource_id)
        return sorted(self._graph.successors(resource_id), key=self._order.__getitem__)

    def cost_of(self, resource_id: str) -> float:
        """Estimated generation cost of one resource."""
        definition = self.get(resource_id)
        if definition.estimated_cost is None:
            return self._default_cost
        return definition.estimated_cost
