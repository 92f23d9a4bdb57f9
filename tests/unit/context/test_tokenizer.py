# tests/unit/context/test_tokenizer.py — v1
"""Tests for context/tokenizer.py — CharRatioTokenizer."""

from __future__ import annotations

import pytest

from depcontext.context.tokenizer import CharRatioTokenizer, Tokenizer


class TestCharRatioTokenizer:
    def test_satisfies_protocol(self):
        assert isinstance(CharRatioTokenizer(), Tokenizer)

    def test_count(self):
        tok = CharRatioTokenizer(chars_per_token=4)
        assert tok.count("") == 0
        assert tok.count("abcd") == 1
        assert tok.count("abcde") == 2

    def test_truncate_noop_when_fits(self):
        tok = CharRatioTokenizer()
        assert tok.truncate("short text", 10) == "short text"

    def test_truncate_respects_limit(self):
        tok = CharRatioTokenizer(chars_per_token=4)
        text = "word " * 500
        cut = tok.truncate(text, 20)
        assert tok.count(cut) <= 20
        assert cut.endswith("...")

    def test_truncate_zero(self):
        assert CharRatioTokenizer().truncate("anything", 0) == ""

    def test_truncate_tiny_allowance(self):
        tok = CharRatioTokenizer(chars_per_token=2)
        cut = tok.truncate("abcdefghij", 1)
        assert tok.count(cut) <= 1

    def test_invalid_ratio(self):
        with pytest.raises(ValueError):
            CharRatioTokenizer(chars_per_token=0)
