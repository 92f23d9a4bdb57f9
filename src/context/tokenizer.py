# src/context/tokenizer.py — v1
"""Pluggable token estimation.

The default estimator uses a fixed characters-per-token ratio, which is
close enough for budgeting prompt context without a model-specific
tokenizer installed.
"""

from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "..."


@runtime_checkable
class Tokenizer(Protocol):
    """Token estimator used by the context aggregator."""

    def count(self, text: str) -> int:
        """Estimated token count of ``text``."""
        ...

    def truncate(self, text: str, max_tokens: int) -> str:
        """Return a prefix of ``text`` whose estimate is <= ``max_tokens``."""
        ...


class CharRatioTokenizer:
    """Estimate tokens as ``ceil(len(text) / chars_per_token)``.

    Args:
        chars_per_token: Average characters per token.
        marker: Appended to truncated text; counted inside the allowance.
    """

    def __init__(
        self,
        chars_per_token: int = CHARS_PER_TOKEN,
        marker: str = TRUNCATION_MARKER,
    ) -> None:
        if chars_per_token < 1:
            raise ValueError("chars_per_token must be >= 1")
        self._ratio = chars_per_token
        self._marker = marker

    def count(self, text: str) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / self._ratio)

    def truncate(self, text: str, max_tokens: int) -> str:
        if max_tokens <= 0:
            return ""
        if self.count(text) <= max_tokens:
            return text

        limit = max_tokens * self._ratio
        body_len = limit - len(self._marker)
        if body_len <= 0:
            return text[:limit]

        body = text[:body_len]
        # Prefer cutting on a word boundary when one is reasonably close.
        space = body.rfind(" ")
        if space > body_len // 2:
            body = body[:space]
        return body.rstrip() + self._marker
