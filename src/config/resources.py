# src/config/resources.py — v1
"""Declarative registry of the platform's generated resources.

Order matters: declaration order is the tie-break for generation order
and the processing order for context tiers.

Each entry: (resource_id, category, title, estimated_cost, dependencies)
where dependencies are (resource_id, kind) pairs.
"""

from __future__ import annotations

DEFAULT_RESOURCES: list[tuple[str, str, str, float, list[tuple[str, str]]]] = [
    ("icp-analysis", "buyer_intelligence", "Ideal Customer Profile Analysis", 0.12, []),
    ("company-research", "competitive_intelligence", "Company Research Brief", 0.08, []),
    (
        "buyer-personas", "buyer_intelligence", "Buyer Personas", 0.15,
        [
            ("icp-analysis", "prerequisite"),
            ("company-research", "context_enhancer"),
        ],
    ),
    (
        "empathy-map", "behavioral_analysis", "Buyer Empathy Map", 0.10,
        [("buyer-personas", "prerequisite")],
    ),
    (
        "value-proposition", "strategic_tools", "Value Proposition Canvas", 0.12,
        [
            ("icp-analysis", "prerequisite"),
            ("buyer-personas", "context_enhancer"),
        ],
    ),
    (
        "sales-messaging", "sales_frameworks", "Sales Messaging Framework", 0.18,
        [
            ("buyer-personas", "prerequisite"),
            ("value-proposition", "context_enhancer"),
            ("empathy-map", "context_enhancer"),
            ("company-research", "data_source"),
        ],
    ),
    (
        "competitive-battlecard", "competitive_intelligence", "Competitive Battlecard", 0.16,
        [
            ("company-research", "prerequisite"),
            ("value-proposition", "context_enhancer"),
        ],
    ),
    (
        "objection-handling", "sales_frameworks", "Objection Handling Guide", 0.14,
        [
            ("sales-messaging", "prerequisite"),
            ("competitive-battlecard", "context_enhancer"),
            ("empathy-map", "data_source"),
        ],
    ),
    (
        "cold-email-sequence", "implementation_guides", "Cold Email Sequence", 0.10,
        [
            ("sales-messaging", "prerequisite"),
            ("objection-handling", "context_enhancer"),
            ("buyer-personas", "data_source"),
        ],
    ),
    (
        "sales-slide-deck", "implementation_guides", "Sales Slide Deck", 0.22,
        [
            ("sales-messaging", "prerequisite"),
            ("value-proposition", "prerequisite"),
            ("competitive-battlecard", "context_enhancer"),
            ("cold-email-sequence", "template_base"),
        ],
    ),
]
