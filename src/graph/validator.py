# src/graph/validator.py — v1
"""DependencyValidator: can a resource be generated now for a user?

Missing prerequisites are reported, not raised: an invalid result carries
the actionable list and a generation order that would satisfy it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from depcontext.catalog.models import DependencyKind
from depcontext.graph.models import ValidationResult
from depcontext.graph.resource_graph import ResourceGraph

logger = logging.getLogger(__name__)


class DependencyValidator:
    """Validate targets against a user's generated-resource snapshot."""

    def __init__(self, graph: ResourceGraph) -> None:
        self._graph = graph
        self._catalog = graph.catalog

    def validate(
        self,
        user_id: str,
        target_resource_id: str,
        user_resource_set: Iterable[str],
    ) -> ValidationResult:
        """Check prerequisites of ``target_resource_id`` for ``user_id``.

        Args:
            user_id: Owner of the resource snapshot (used for logging only).
            target_resource_id: Resource the caller wants to generate.
            user_resource_set: Ids the user has already generated.

        Returns:
            ValidationResult; ``valid`` is True iff no prerequisite is missing.

        Raises:
            UnknownResourceError: If the target is not in the catalog.
            GraphCycleError: If the catalog is malformed (never expected).
        """
        have = set(user_resource_set)
        unknown = [rid for rid in have if rid not in self._catalog]
        if unknown:
            logger.debug(
                "Ignoring %d ids unknown to the catalog for user %s: %s",
                len(unknown), user_id, sorted(unknown),
            )

        closure = self._graph.prerequisite_closure(target_resource_id)
        missing_set = {
            rid for rid in closure
            if rid != target_resource_id and rid not in have
        }

        order = self._graph.topological_order(closure)
        suggested = [
            rid for rid in order
            if rid in missing_set or rid == target_resource_id
        ]
        missing = [rid for rid in suggested if rid != target_resource_id]
        cost = sum(self._catalog.cost_of(rid) for rid in suggested)

        missing_optional = [
            dep.resource_id
            for dep in self._catalog.get(target_resource_id).dependencies
            if dep.kind is not DependencyKind.PREREQUISITE
            and dep.resource_id not in have
        ]

        result = ValidationResult(
            target_resource_id=target_resource_id,
            valid=not missing,
            missing_dependencies=missing,
            suggested_order=suggested,
            estimated_cost=round(cost, 6),
            missing_optional=missing_optional,
        )
        logger.info(
            "Validated %s for user %s: valid=%s, missing=%s",
            target_resource_id, user_id, result.valid, missing,
        )
        return result
