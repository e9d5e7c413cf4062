"""Tests for durable memory models."""

from datetime import datetime, timedelta

import pytest

from memory.models import ContextEvent, IdentityFact, clamp_confidence
from shared_types import Maturity


class TestClamp:
    @pytest.mark.parametrize(
        "raw, expected",
        [(2, 1.0), (-1, 0.0), (0.4, 0.4), ("0.7", 0.7), ("n/a", 0.0), (float("nan"), 0.0)],
    )
    def test_clamp(self, raw, expected):
        assert clamp_confidence(raw) == pytest.approx(expected)

    def test_fact_confidence_clamped(self):
        assert IdentityFact(content="x", confidence=5).confidence == 1.0
        assert IdentityFact(content="x", confidence=-3).confidence == 0.0

    def test_negative_validation_count_rejected(self):
        with pytest.raises(ValueError):
            IdentityFact(content="x", validation_count=-1)


class TestEffectiveConfidence:
    def test_two_half_lives(self, now):
        fact = IdentityFact(content="x", confidence=0.8, last_validated=now - timedelta(days=120))
        assert fact.effective_confidence(now) == pytest.approx(0.2)

    def test_validated_today(self, now):
        fact = IdentityFact(content="x", confidence=0.8, last_validated=now)
        assert fact.effective_confidence(now) == pytest.approx(0.8)

    def test_custom_half_life(self, now):
        fact = IdentityFact(content="x", confidence=1.0, last_validated=now - timedelta(days=30))
        assert fact.effective_confidence(now, half_life_days=30) == pytest.approx(0.5)

    def test_naive_timestamps_treated_as_utc(self, now):
        naive = datetime(2025, 6, 1, 12, 0)
        fact = IdentityFact(content="x", confidence=0.6, last_validated=naive)
        assert fact.last_validated == now
        assert fact.effective_confidence(now) == pytest.approx(0.6)

    def test_defaults(self):
        fact = IdentityFact(content="x")
        assert fact.maturity == Maturity.CANDIDATE
        assert fact.validation_count == 0


class TestContextEvent:
    @pytest.mark.parametrize(
        "data, text",
        [
            ({"fact": "Uses Vim", "title": "ignored"}, "Uses Vim"),
            ({"insight": "  Likes Rust  "}, "Likes Rust"),
            ({"summary": "", "text": "Fallback"}, "Fallback"),
            ({"url": "https://x.dev"}, ""),
        ],
    )
    def test_text_key_priority(self, data, text):
        assert ContextEvent(data=data).text == text
