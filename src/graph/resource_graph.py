# src/graph/resource_graph.py — v1
"""ResourceGraph: traversal and ordering over the catalog's dependency DAG.

Only ``prerequisite`` edges are followed when computing closures and
generation orders. Ties in topological order are broken by catalog
declaration order, so every ordering is deterministic.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import networkx as nx

from depcontext.catalog.catalog import ResourceCatalog
from depcontext.catalog.models import DependencyKind
from depcontext.core.errors import GraphCycleError

logger = logging.getLogger(__name__)

_BLOCKING = (DependencyKind.PREREQUISITE,)


class ResourceGraph:
    """Per-catalog graph helper; per-user views are built on demand."""

    def __init__(self, catalog: ResourceCatalog) -> None:
        self._catalog = catalog
        full = catalog.graph
        self._prerequisites = nx.subgraph_view(
            full,
            filter_edge=lambda u, v: full[u][v]["kind"] is DependencyKind.PREREQUISITE,
        )

    @property
    def catalog(self) -> ResourceCatalog:
        return self._catalog

    def prerequisite_closure(self, target: str) -> list[str]:
        """Return ``target`` and all its transitive prerequisites.

        Depth-first traversal with a visiting set. The result is in
        post-order (every prerequisite before the resources needing it,
        ``target`` last).

        Raises:
            UnknownResourceError: If ``target`` is not in the catalog.
            GraphCycleError: If a back edge is found.
        """
        self._catalog.get(target)

        visiting: set[str] = set()
        done: set[str] = set()
        order: list[str] = []
        path: list[str] = []

        def visit(node: str) -> None:
            if node in done:
                return
            if node in visiting:
                start = path.index(node)
                raise GraphCycleError(path[start:] + [node])
            visiting.add(node)
            path.append(node)
            for dep in self._catalog.dependencies_of(node, kinds=_BLOCKING):
                visit(dep)
            path.pop()
            visiting.discard(node)
            done.add(node)
            order.append(node)

        visit(target)
        return order

    def topological_order(self, nodes: Iterable[str]) -> list[str]:
        """Order ``nodes`` so every prerequisite precedes its dependents.

        Ordering constraints come from the prerequisite edges among
        ``nodes``; ties are broken by declaration order.
        """
        subgraph = self._prerequisites.subgraph(set(nodes))
        return list(
            nx.lexicographical_topological_sort(
                subgraph, key=self._catalog.declaration_index
            )
        )

    def user_graph(self, resource_set: Iterable[str]) -> nx.DiGraph:
        """Copy of the full dependency graph annotated with ``generated`` flags.

        Ids unknown to the catalog are ignored.
        """
        generated = set(resource_set)
        graph = nx.DiGraph(self._catalog.graph)
        for node in graph.nodes:
            graph.nodes[node]["generated"] = node in generated
        return graph

    def unlockable(self, resource_set: Iterable[str]) -> list[str]:
        """Resources not yet generated whose prerequisites are all satisfied.

        Returned in declaration order.
        """
        generated = set(resource_set)
        return [
            rid
            for rid in self._catalog.resource_ids
            if rid not in generated
            and all(
                dep in generated
                for dep in self._catalog.dependencies_of(rid, kinds=_BLOCKING)
            )
        ]
