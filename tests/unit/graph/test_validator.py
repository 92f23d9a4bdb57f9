# tests/unit/graph/test_validator.py — v1
"""Tests for graph/validator.py — DependencyValidator."""

from __future__ import annotations

import pytest

from depcontext.catalog.loader import default_catalog
from depcontext.catalog.models import DependencyKind
from depcontext.core.errors import UnknownResourceError
from depcontext.graph.resource_graph import ResourceGraph
from depcontext.graph.validator import DependencyValidator
from tests.conftest import make_catalog


def _validator(catalog) -> DependencyValidator:
    return DependencyValidator(ResourceGraph(catalog))


class TestScenarios:
    def test_missing_prerequisite(self, chain_catalog):
        result = _validator(chain_catalog).validate("u1", "B", set())
        assert result.valid is False
        assert result.missing_dependencies == ["A"]
        assert result.suggested_order == ["A", "B"]

    def test_satisfied_prerequisite(self, chain_catalog):
        result = _validator(chain_catalog).validate("u1", "B", {"A"})
        assert result.valid is True
        assert result.missing_dependencies == []
        assert result.suggested_order == ["B"]

    def test_soft_dependency_does_not_block(self, mixed_catalog):
        result = _validator(mixed_catalog).validate("u1", "C", {"A"})
        assert result.valid is True
        assert result.missing_optional == ["D", "E", "F"]

    def test_unknown_target(self, chain_catalog):
        with pytest.raises(UnknownResourceError):
            _validator(chain_catalog).validate("u1", "Z", set())

    def test_unknown_ids_in_set_ignored(self, chain_catalog):
        result = _validator(chain_catalog).validate("u1", "B", {"A", "legacy-thing"})
        assert result.valid is True


class TestTransitive:
    @pytest.fixture
    def chain(self):
        return make_catalog(
            ("A", []),
            ("B", [("A", "prerequisite")]),
            ("C", [("B", "prerequisite")]),
            ("D", [("C", "prerequisite")]),
            cost=1.5,
        )

    def test_transitive_missing(self, chain):
        result = _validator(chain).validate("u1", "D", set())
        assert result.missing_dependencies == ["A", "B", "C"]
        assert result.suggested_order == ["A", "B", "C", "D"]
        assert result.estimated_cost == pytest.approx(6.0)

    def test_partial_progress(self, chain):
        result = _validator(chain).validate("u1", "D", {"A", "B"})
        assert result.missing_dependencies == ["C"]
        assert result.suggested_order == ["C", "D"]
        assert result.estimated_cost == pytest.approx(3.0)

    def test_gap_below_generated_resource(self, chain):
        # The user somehow has C without A and B: A and B are still reported.
        result = _validator(chain).validate("u1", "D", {"C"})
        assert result.valid is False
        assert result.missing_dependencies == ["A", "B"]

    def test_idempotent(self, chain):
        validator = _validator(chain)
        assert validator.validate("u1", "D", {"A"}) == validator.validate("u1", "D", {"A"})


class TestProperties:
    @pytest.mark.parametrize("have", [set(), {"icp-analysis"}, {"icp-analysis", "buyer-personas"}])
    def test_suggested_order_is_topological(self, have):
        catalog = default_catalog()
        graph = ResourceGraph(catalog)
        validator = DependencyValidator(graph)
        for target in catalog.resource_ids:
            result = validator.validate("u1", target, have)
            position = {rid: i for i, rid in enumerate(result.suggested_order)}
            closure = set(graph.prerequisite_closure(target))
            for rid in result.missing_dependencies:
                assert rid in closure
                assert rid not in have
            for rid in result.suggested_order:
                for dep in catalog.dependencies_of(rid, kinds=[DependencyKind.PREREQUISITE]):
                    if dep in position:
                        assert position[dep] < position[rid]
            assert result.valid == (not result.missing_dependencies)
            assert result.suggested_order[-1] == target
