"""Follow-up question generation after the core questions are answered."""

import json
from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from .extractor import strip_code_fences
from .schema import BranchQuestion, InterviewState

logger = structlog.get_logger()

_BRANCHING_PROMPT = """<task>
Analyze this interview and generate intelligent follow-up questions.
The goal is to:
1. Fill GAPS in understanding (things not yet known)
2. Add DEPTH to interesting threads (things mentioned but not explored)
3. CLARIFY ambiguities (things that could mean multiple things)
</task>

<interview>
{exchanges}
</interview>

<extracted_facts>
{facts}
</extracted_facts>

<instructions>
Generate 2-3 follow-up questions that would add the most value.
Each question should be conversational, not interrogative.
Reference specific things they said to show you were listening.
Avoid questions that are too basic ("What is your name?"), too generic
("Tell me more about your job") or already covered.
</instructions>

<output_format>
Return a JSON object with:
{{
  "summary": "Brief, friendly summary of what was learned (2-3 sentences)",
  "questions": [
    {{
      "id": "branch_1",
      "text": "The question to ask",
      "rationale": "Why this question adds value",
      "explores": "gap|depth|clarification",
      "intent": "What this aims to extract"
    }}
  ]
}}

Return ONLY the JSON, no other text.
</output_format>"""


@dataclass
class BranchingResult:
    summary: str = ""
    questions: list[BranchQuestion] = field(default_factory=list)
    error: str | None = None


def build_branching_prompt(state: InterviewState) -> str:
    exchanges = "\n\n".join(
        f"Q: {e.question.text}\nA: {e.answer}"
        for e in [*state.core_exchanges, *state.branch_exchanges]
    )
    facts = "\n".join(
        f"- [{f.category}] {f.content} ({f.confidence * 100:.0f}%)" for f in state.all_facts
    )
    return _BRANCHING_PROMPT.format(exchanges=exchanges, facts=facts)


def parse_branching(response: str) -> BranchingResult:
    """Parse the generator's JSON object.

    Raises:
        ValueError: when the response is not a JSON object
    """
    parsed = json.loads(strip_code_fences(response))
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected JSON object, got {type(parsed).__name__}")

    questions: list[BranchQuestion] = []
    seen_ids: set[str] = set()
    for i, item in enumerate(parsed.get("questions") or []):
        if not isinstance(item, dict) or not str(item.get("text") or "").strip():
            continue
        question_id = str(item.get("id") or f"branch_{i + 1}")
        n = i + 1
        while question_id in seen_ids:
            question_id = f"branch_{n}"
            n += 1
        try:
            question = BranchQuestion(
                id=question_id,
                text=str(item["text"]).strip(),
                intent=str(item.get("intent") or ""),
                rationale=str(item.get("rationale") or ""),
                explores=item.get("explores"),
            )
        except ValidationError:
            logger.debug("branch_question_skipped", item=str(item)[:200])
            continue
        seen_ids.add(question.id)
        questions.append(question)

    summary = parsed.get("summary")
    return BranchingResult(summary=summary.strip() if isinstance(summary, str) else "", questions=questions)


class BranchQuestionGenerator:
    """Proposes gap, depth and clarification follow-ups plus a summary."""

    def __init__(self, provider=None, max_tokens: int = 1024):
        self._provider = provider
        self.max_tokens = max_tokens

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_cheap_provider

        self._provider = create_cheap_provider()
        return self._provider

    async def generate(self, state: InterviewState) -> BranchingResult:
        try:
            response = await self._get_provider().complete(
                build_branching_prompt(state), max_tokens=self.max_tokens
            )
            if not response or not response.strip():
                return BranchingResult(error="Empty response")
            result = parse_branching(response)
        except Exception as e:
            logger.warning("branch_generation_failed", interview_id=state.id, error=str(e))
            return BranchingResult(error=f"Branch generation failed: {e}")

        logger.debug("branch_questions_generated", interview_id=state.id, count=len(result.questions))
        return result
