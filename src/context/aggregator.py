# src/context/aggregator.py — v2
"""Context aggregator: build a tiered, token-budgeted AggregatedContext.

Direct dependencies of the target are routed to tiers by kind:

    prerequisite                 -> tier1 (critical)
    context_enhancer             -> tier2 (required)
    data_source, template_base   -> tier3 (optional)

Tier1 degrades by truncation: every prerequisite keeps a share of the
budget. Tier2 and tier3 degrade by omission, processed in catalog
declaration order. Each fragment is cut to its allowance before being
counted, so ``token_counts.total`` never exceeds the sum of the budgets.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from depcontext.catalog.catalog import ResourceCatalog
from depcontext.catalog.models import DependencyKind
from depcontext.context.models import (
    AggregatedContext,
    ContextFragment,
    TierBudgets,
    TierName,
    TokenCounts,
)
from depcontext.context.tokenizer import CharRatioTokenizer, Tokenizer
from depcontext.core.errors import TokenBudgetExceededError
from depcontext.tracking import metrics

logger = logging.getLogger(__name__)

ContentValue = Union[str, Mapping[str, Any], list[Any], None]
ContentLookup = Callable[[str], ContentValue]

DEFAULT_MIN_FRAGMENT_TOKENS = 50

_TIER_BY_KIND: dict[DependencyKind, TierName] = {
    DependencyKind.PREREQUISITE: "tier1",
    DependencyKind.CONTEXT_ENHANCER: "tier2",
    DependencyKind.DATA_SOURCE: "tier3",
    DependencyKind.TEMPLATE_BASE: "tier3",
}

_TIER_HEADERS: dict[TierName, str] = {
    "tier1": "## Tier 1: Critical Context",
    "tier2": "## Tier 2: Required Context",
    "tier3": "## Tier 3: Optional Context",
}


@dataclass
class _Candidate:
    resource_id: str
    title: str
    kind: DependencyKind
    text: str
    tokens: int


class ContextAggregator:
    """Assemble AggregatedContext for a target resource.

    Args:
        catalog: Resource catalog (dependency declarations and titles).
        budgets: Token budget per tier.
        tokenizer: Token estimator; defaults to a 4 chars/token ratio.
        min_fragment_tokens: Floor for tier1 shares while budget allows;
            tier2/tier3 remainders smaller than this are omitted.
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        budgets: TierBudgets | None = None,
        tokenizer: Tokenizer | None = None,
        min_fragment_tokens: int = DEFAULT_MIN_FRAGMENT_TOKENS,
    ) -> None:
        self._catalog = catalog
        self._budgets = budgets or TierBudgets()
        self._tokenizer = tokenizer or CharRatioTokenizer()
        self._min_fragment = max(1, min_fragment_tokens)

    @property
    def budgets(self) -> TierBudgets:
        return self._budgets

    def aggregate(
        self,
        user_id: str,
        target_resource_id: str,
        user_resource_set: Iterable[str],
        content_lookup: ContentLookup,
    ) -> AggregatedContext:
        """Aggregate content of the target's generated dependencies.

        Args:
            user_id: Owner of the resource snapshot (used for logging only).
            target_resource_id: Resource about to be generated.
            user_resource_set: Ids the user has already generated.
            content_lookup: Returns stored content for a resource id, or None.

        Returns:
            Immutable AggregatedContext.

        Raises:
            TokenBudgetExceededError: If any tier budget is zero or negative.
            UnknownResourceError: If the target is not in the catalog.
        """
        started = time.perf_counter()
        self._check_budgets()

        definition = self._catalog.get(target_resource_id)
        have = set(user_resource_set)

        candidates: dict[TierName, list[_Candidate]] = {
            "tier1": [], "tier2": [], "tier3": [],
        }
        for dep in definition.dependencies:
            if dep.resource_id not in have:
                continue
            text = _normalize_content(content_lookup(dep.resource_id))
            if not text:
                logger.warning(
                    "No stored content for generated resource %s (user %s)",
                    dep.resource_id, user_id,
                )
                continue
            candidates[_TIER_BY_KIND[dep.kind]].append(
                _Candidate(
                    resource_id=dep.resource_id,
                    title=self._catalog.get(dep.resource_id).display_title,
                    kind=dep.kind,
                    text=text,
                    tokens=self._tokenizer.count(text),
                )
            )

        omitted: list[str] = []
        tier1 = self._fill_critical(candidates["tier1"], self._budgets.tier1, omitted)
        tier2 = self._fill_by_omission(candidates["tier2"], self._budgets.tier2, omitted)
        tier3 = self._fill_by_omission(candidates["tier3"], self._budgets.tier3, omitted)

        counts = TokenCounts(
            tier1=sum(f.token_estimate for f in tier1),
            tier2=sum(f.token_estimate for f in tier2),
            tier3=sum(f.token_estimate for f in tier3),
            total=sum(f.token_estimate for f in (*tier1, *tier2, *tier3)),
        )

        context = AggregatedContext(
            target_resource_id=target_resource_id,
            tier1_critical=tier1,
            tier2_required=tier2,
            tier3_optional=tier3,
            formatted_prompt=_format_prompt({"tier1": tier1, "tier2": tier2, "tier3": tier3}),
            token_counts=counts,
            budgets=self._budgets,
            truncated=[f.source_resource_id for f in (*tier1, *tier2, *tier3) if f.truncated],
            omitted=omitted,
            aggregation_ms=round((time.perf_counter() - started) * 1000, 3),
        )

        metrics.AGGREGATED_TOKENS.observe(counts.total)
        logger.info(
            "Context aggregated for %s (user %s): %d fragments, ~%d tokens (budget=%d)",
            target_resource_id, user_id, len(context.fragments),
            counts.total, self._budgets.total,
        )
        return context

    # --- Tier filling ---

    def _check_budgets(self) -> None:
        for tier in ("tier1", "tier2", "tier3"):
            budget = getattr(self._budgets, tier)
            if budget <= 0:
                raise TokenBudgetExceededError(tier, budget)

    def _fill_critical(
        self,
        candidates: list[_Candidate],
        budget: int,
        omitted: list[str],
    ) -> list[ContextFragment]:
        allocations = _fair_allocation(
            [c.tokens for c in candidates], budget, self._min_fragment
        )
        fragments: list[ContextFragment] = []
        for candidate, allowance in zip(candidates, allocations):
            if allowance <= 0:
                logger.warning(
                    "Tier1 budget (%d) exhausted; omitting prerequisite %s",
                    budget, candidate.resource_id,
                )
                omitted.append(candidate.resource_id)
                continue
            fragment = self._make_fragment(candidate, allowance)
            if fragment is None:
                omitted.append(candidate.resource_id)
                continue
            fragments.append(fragment)
        return fragments

    def _fill_by_omission(
        self,
        candidates: list[_Candidate],
        budget: int,
        omitted: list[str],
    ) -> list[ContextFragment]:
        remaining = budget
        fragments: list[ContextFragment] = []
        for candidate in candidates:
            if candidate.tokens <= remaining:
                allowance = candidate.tokens
            elif remaining >= self._min_fragment:
                allowance = remaining
            else:
                logger.debug(
                    "Omitting %s: %d tokens, %d left in tier budget",
                    candidate.resource_id, candidate.tokens, remaining,
                )
                omitted.append(candidate.resource_id)
                continue
            fragment = self._make_fragment(candidate, allowance)
            if fragment is None:
                omitted.append(candidate.resource_id)
                continue
            remaining -= fragment.token_estimate
            fragments.append(fragment)
        return fragments

    def _make_fragment(
        self, candidate: _Candidate, allowance: int
    ) -> ContextFragment | None:
        """Cut ``candidate`` to ``allowance``; None when nothing survives the cut."""
        text = candidate.text
        if candidate.tokens > allowance:
            text = self._fit(text, allowance)
            if not text:
                logger.warning(
                    "Nothing of %s fits in %d tokens; omitting it",
                    candidate.resource_id, allowance,
                )
                return None
        return ContextFragment(
            source_resource_id=candidate.resource_id,
            title=candidate.title,
            kind=candidate.kind,
            summary=text,
            token_estimate=self._tokenizer.count(text),
            original_token_estimate=candidate.tokens,
            truncated=text != candidate.text,
        )

    def _fit(self, text: str, allowance: int) -> str:
        """Truncate ``text`` to ``allowance`` tokens, whatever the tokenizer does."""
        fitted = self._tokenizer.truncate(text, allowance)
        while fitted and self._tokenizer.count(fitted) > allowance:
            fitted = fitted[: len(fitted) // 2]
        return fitted


def _fair_allocation(demands: list[int], budget: int, floor: int) -> list[int]:
    """Split ``budget`` across ``demands`` (max-min fair, sum <= budget).

    Small demands are met in full and their surplus flows to larger ones.
    When the fair share would drop under ``floor``, fragments receive the
    floor in declaration order instead and any remainder tops them up. A
    fragment that cannot get its full floor (or its whole demand, when
    smaller) gets nothing, so no allocation is ever cut below the floor.
    """
    n = len(demands)
    if n == 0:
        return []

    allocation = [0] * n
    remaining = budget
    by_size = sorted(range(n), key=lambda i: demands[i])
    for position, index in enumerate(by_size):
        share = remaining // (n - position)
        allocation[index] = min(demands[index], share)
        remaining -= allocation[index]

    if all(allocation[i] >= min(demands[i], floor) for i in range(n)):
        return allocation

    allocation = [0] * n
    remaining = budget
    for i in range(n):
        wanted = min(demands[i], floor)
        if wanted <= remaining:
            allocation[i] = wanted
            remaining -= wanted
    for i in range(n):
        if allocation[i] == 0:
            continue
        extra = min(demands[i] - allocation[i], remaining)
        allocation[i] += extra
        remaining -= extra
    return allocation


def _normalize_content(value: ContentValue) -> str:
    """Render stored content as prompt text with collapsed whitespace."""
    if value is None:
        return ""
    if not isinstance(value, str):
        value = json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    value = re.sub(r"[ \t]+", " ", value)
    value = re.sub(r"\n{3,}", "\n\n", value)
    return value.strip()


def _format_prompt(tiers: dict[TierName, list[ContextFragment]]) -> str:
    parts: list[str] = []
    for tier, fragments in tiers.items():
        if not fragments:
            continue
        sections = [
            f"### {f.title} ({f.source_resource_id})\n{f.summary}" for f in fragments
        ]
        parts.append(_TIER_HEADERS[tier] + "\n\n" + "\n\n".join(sections))
    return "\n\n".join(parts)
