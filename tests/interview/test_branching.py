"""Tests for branch question generation."""

import json

import pytest

from interview.branching import BranchQuestionGenerator, build_branching_prompt, parse_branching
from interview.schema import CORE_QUESTIONS, ExtractedFact, InterviewExchange, create_interview_state
from llm import LLMRateLimitError
from shared_types import BranchExplores


@pytest.fixture
def state(now):
    state = create_interview_state(now)
    fact = ExtractedFact(category="expertise", content="Go", confidence=0.8)
    state.core_exchanges.append(
        InterviewExchange(
            question=CORE_QUESTIONS[0],
            answer="Backend engineer writing Go",
            extracted_facts=(fact,),
            answered_at=now,
        )
    )
    state.all_facts.append(fact)
    return state


class TestGenerator:
    @pytest.mark.asyncio
    async def test_happy_path(self, provider, state, branching_response):
        provider.complete.return_value = branching_response
        result = await BranchQuestionGenerator(provider).generate(state)
        assert result.error is None
        assert result.summary.startswith("You're a backend engineer")
        assert [q.id for q in result.questions] == ["branch_1", "branch_2", "branch_3"]
        assert result.questions[0].explores == BranchExplores.CLARIFICATION

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self, provider, state):
        provider.complete.side_effect = LLMRateLimitError("429")
        result = await BranchQuestionGenerator(provider).generate(state)
        assert result.questions == []
        assert result.summary == ""
        assert "429" in result.error

    @pytest.mark.asyncio
    async def test_parse_error_returns_empty(self, provider, state):
        provider.complete.return_value = "not json"
        result = await BranchQuestionGenerator(provider).generate(state)
        assert result.questions == []
        assert result.error


class TestParsing:
    def test_missing_ids_default_by_position(self):
        result = parse_branching(
            json.dumps(
                {
                    "summary": "s",
                    "questions": [{"text": "First?"}, {"text": "Second?", "explores": "weird"}],
                }
            )
        )
        assert [q.id for q in result.questions] == ["branch_1", "branch_2"]
        assert result.questions[1].explores == BranchExplores.GAP

    def test_duplicate_ids_renamed(self):
        result = parse_branching(
            json.dumps({"questions": [{"id": "x", "text": "A?"}, {"id": "x", "text": "B?"}]})
        )
        assert [q.id for q in result.questions] == ["x", "branch_2"]

    def test_renamed_id_never_collides(self):
        result = parse_branching(
            json.dumps(
                {"questions": [{"id": "branch_2", "text": "A?"}, {"id": "branch_2", "text": "B?"}]}
            )
        )
        assert [q.id for q in result.questions] == ["branch_2", "branch_3"]

    def test_questions_without_text_dropped(self):
        result = parse_branching(json.dumps({"summary": "s", "questions": [{"id": "a"}]}))
        assert result.questions == []
        assert result.summary == "s"

    def test_prompt_includes_transcript_and_facts(self, state):
        prompt = build_branching_prompt(state)
        assert "Q: What do you do?\nA: Backend engineer writing Go" in prompt
        assert "- [expertise] Go (80%)" in prompt
