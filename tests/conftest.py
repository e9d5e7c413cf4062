"""Shared test fixtures for persona."""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def provider():
    """Deterministic text-completion stand-in (returns an empty fact list)."""
    mock = MagicMock()
    mock.complete = AsyncMock(return_value="[]")
    return mock


@pytest.fixture
def branching_response():
    return json.dumps(
        {
            "summary": "You're a backend engineer building payment APIs in Go.",
            "questions": [
                {
                    "id": "branch_1",
                    "text": "Is the payments work more fraud detection or transaction processing?",
                    "rationale": "Payments is broad",
                    "explores": "clarification",
                    "intent": "Narrow the domain",
                },
                {
                    "id": "branch_2",
                    "text": "How long have you been writing Go?",
                    "rationale": "Depth of expertise unknown",
                    "explores": "depth",
                    "intent": "Expertise level",
                },
                {
                    "id": "branch_3",
                    "text": "Where are you based?",
                    "rationale": "Location unknown",
                    "explores": "gap",
                    "intent": "Location",
                },
            ],
        }
    )


@pytest.fixture
def sample_facts_response():
    return json.dumps(
        [
            {
                "category": "core",
                "content": "Senior backend engineer",
                "confidence": 1.0,
                "visibility": "public",
                "evidence": "said so",
            },
            {
                "category": "expertise",
                "content": "Go",
                "confidence": 0.8,
                "visibility": "public",
                "evidence": "mentioned Go services",
            },
        ]
    )
