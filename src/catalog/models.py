# src/catalog/models.py — v1
"""Catalog domain models: DependencyKind, ResourceDependency, ResourceDefinition."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DependencyKind(str, Enum):
    """How a dependency participates in generation.

    Only PREREQUISITE edges block generation. The other kinds feed
    context aggregation as optional enrichment.
    """

    PREREQUISITE = "prerequisite"
    CONTEXT_ENHANCER = "context_enhancer"
    DATA_SOURCE = "data_source"
    TEMPLATE_BASE = "template_base"

    @property
    def is_blocking(self) -> bool:
        return self is DependencyKind.PREREQUISITE


ResourceCategory = Literal[
    "buyer_intelligence",
    "sales_frameworks",
    "strategic_tools",
    "implementation_guides",
    "competitive_intelligence",
    "behavioral_analysis",
]


class ResourceDependency(BaseModel):
    """Single declared edge: the owning resource depends on ``resource_id``."""

    model_config = ConfigDict(frozen=True)

    resource_id: str = Field(min_length=1)
    kind: DependencyKind = DependencyKind.PREREQUISITE


class ResourceDefinition(BaseModel):
    """Static declaration of a resource type and its dependencies."""

    model_config = ConfigDict(frozen=True)

    resource_id: str = Field(min_length=1)
    category: ResourceCategory
    title: str = ""
    estimated_cost: float | None = Field(default=None, ge=0)
    dependencies: tuple[ResourceDependency, ...] = ()

    @property
    def display_title(self) -> str:
        return self.title or self.resource_id
