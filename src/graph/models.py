# src/graph/models.py — v1
"""Validation result model produced by DependencyValidator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ValidationResult(BaseModel):
    """Outcome of checking whether a resource can be generated now.

    ``suggested_order`` lists every missing prerequisite followed by the
    target, in a valid generation order. ``missing_optional`` reports
    absent non-blocking direct dependencies and never affects ``valid``.
    """

    model_config = ConfigDict(frozen=True)

    target_resource_id: str
    valid: bool
    missing_dependencies: list[str] = Field(default_factory=list)
    suggested_order: list[str] = Field(default_factory=list)
    estimated_cost: float = 0.0
    missing_optional: list[str] = Field(default_factory=list)
