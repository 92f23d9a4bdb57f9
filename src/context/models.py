# src/context/models.py — v1
"""Context aggregation models: TierBudgets, ContextFragment, AggregatedContext."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from depcontext.catalog.models import DependencyKind


class TierBudgets(BaseModel):
    """Token budget per tier. Not validated here; the aggregator rejects
    non-positive values with TokenBudgetExceededError."""

    model_config = ConfigDict(frozen=True)

    tier1: int = 500
    tier2: int = 2000
    tier3: int = 1000

    @property
    def total(self) -> int:
        return self.tier1 + self.tier2 + self.tier3


class ContextFragment(BaseModel):
    """Excerpt of a generated prerequisite's content, possibly truncated."""

    model_config = ConfigDict(frozen=True)

    source_resource_id: str
    title: str
    kind: DependencyKind
    summary: str
    token_estimate: int = Field(ge=0)
    original_token_estimate: int = Field(ge=0)
    truncated: bool = False


class TokenCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier1: int = 0
    tier2: int = 0
    tier3: int = 0
    total: int = 0


class AggregatedContext(BaseModel):
    """Tiered, token-budgeted context bundle for prompting a model."""

    model_config = ConfigDict(frozen=True)

    target_resource_id: str
    tier1_critical: list[ContextFragment] = Field(default_factory=list)
    tier2_required: list[ContextFragment] = Field(default_factory=list)
    tier3_optional: list[ContextFragment] = Field(default_factory=list)
    formatted_prompt: str = ""
    token_counts: TokenCounts = Field(default_factory=TokenCounts)
    budgets: TierBudgets = Field(default_factory=TierBudgets)
    truncated: list[str] = Field(default_factory=list)
    omitted: list[str] = Field(default_factory=list)
    aggregation_ms: float = 0.0

    @property
    def fragments(self) -> list[ContextFragment]:
        """All fragments in prompt order."""
        return [*self.tier1_critical, *self.tier2_required, *self.tier3_optional]


TierName = Literal["tier1", "tier2", "tier3"]
