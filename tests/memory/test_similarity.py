"""Tests for token-overlap similarity."""

import pytest

from memory.similarity import similarity

PAIRS = [
    ("User really prefers TypeScript", "User prefers TypeScript"),
    ("Works at Acme", "works at acme"),
    ("Go", "Rust"),
    ("", "something"),
    ("a b c", "c d"),
]


class TestSimilarity:
    @pytest.mark.parametrize("a, b", PAIRS)
    def test_symmetric(self, a, b):
        assert similarity(a, b) == similarity(b, a)

    @pytest.mark.parametrize("text", ["Go", "Prefers concise answers", "  spaced   out  "])
    def test_identity(self, text):
        assert similarity(text, text) == 1.0

    def test_jaccard_value(self):
        assert similarity("User really prefers TypeScript", "User prefers TypeScript") == 0.75

    def test_case_insensitive(self):
        assert similarity("Works at Acme", "works at acme") == 1.0

    def test_empty_inputs(self):
        assert similarity("", "") == 0.0
        assert similarity("   ", "x") == 0.0
