"""Fact extraction from interview answers.

Two paths share one contract (`ExtractionResult.facts`): facts supplied by
the host assistant are normalized and passed through, otherwise the answer
is sent to a text-completion provider with an aggressive-inference prompt.
Extraction never raises: any failure yields an empty list plus an error
string.
"""

import json
from collections import defaultdict
from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from shared_types import FactCategory

from .schema import ExtractedFact, InterviewQuestion

logger = structlog.get_logger()

MIN_ANSWER_CHARS = 10
HOST_FACT_CONFIDENCE = 0.8
HOST_EVIDENCE = "Extracted by host LLM"

_EXTRACTION_PROMPT = """<task>
Extract identity facts from this interview response. Be aggressive with inference: extract both explicit statements and reasonable implications.
</task>

<question intent="{intent}">
{question}
</question>

<answer>
{answer}
</answer>
{previous}
<extraction_rules>
1. EXPLICIT facts: directly stated ("I'm a PM" -> role: PM)
2. IMPLICIT facts: strongly implied ("Building with Next.js and Supabase" -> expertise: React, TypeScript, SQL)
3. CONTEXTUAL facts: role/domain implications ("at a fintech startup" -> context: startup environment, domain: fintech)
4. Don't duplicate facts already extracted
5. Confidence by directness:
   - 1.0: explicitly stated
   - 0.8: strongly implied
   - 0.6: reasonably inferred from role or domain
6. Visibility:
   - "public": safe for any AI (preferences, general expertise)
   - "trusted": needs discretion (company info, specific projects)
   - "local": never leaves this device
</extraction_rules>

<categories>
- core: name, role, seniority, title
- expertise: skills, technologies, domains, tools
- preference: communication style, format preferences, work style
- context: company, team, environment, constraints
- focus: current projects, goals, what they're working on
</categories>

<output_format>
Return a JSON array:
[
  {{"category": "expertise", "content": "TypeScript development", "confidence": 0.8, "visibility": "public", "evidence": "mentioned building with Next.js"}}
]

Return ONLY the JSON array, no other text. If no facts can be extracted, return: []
</output_format>"""


@dataclass
class ExtractionResult:
    facts: list[ExtractedFact] = field(default_factory=list)
    error: str | None = None
    source: str = "llm"  # llm | host


def build_extraction_prompt(
    question: InterviewQuestion, answer: str, previous_facts: list[ExtractedFact]
) -> str:
    previous = ""
    if previous_facts:
        lines = "\n".join(f"- [{f.category}] {f.content}" for f in previous_facts)
        previous = f"\n<previous_facts>\n{lines}\n</previous_facts>\n"
    return _EXTRACTION_PROMPT.format(
        intent=question.intent, question=question.text, answer=answer, previous=previous
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` fence (with optional language tag)."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    return text.strip()


def parse_facts(response: str) -> list[ExtractedFact]:
    """Parse a completion response into facts.

    Raises:
        ValueError: when the response is not a JSON array
    """
    items = json.loads(strip_code_fences(response))
    if not isinstance(items, list):
        raise ValueError(f"Expected JSON array, got {type(items).__name__}")

    facts = []
    for item in items:
        if not isinstance(item, dict):
            continue
        content = str(item.get("content", "")).strip()
        if not content:
            continue
        try:
            facts.append(
                ExtractedFact(
                    category=item.get("category"),
                    content=content,
                    confidence=item.get("confidence", 0.0),
                    visibility=item.get("visibility"),
                    evidence=str(item.get("evidence") or ""),
                )
            )
        except ValidationError:
            logger.debug("fact_item_skipped", item=str(item)[:200])
    return facts


def facts_from_host(items: list[dict], default_confidence: float = HOST_FACT_CONFIDENCE) -> list[ExtractedFact]:
    """Normalize facts the host assistant already extracted (fast path)."""
    facts = []
    for item in items or []:
        if not isinstance(item, dict):
            logger.debug("fact_item_skipped", item=str(item)[:200])
            continue
        content = str(item.get("content") or "").strip()
        if not content:
            continue
        confidence = item.get("confidence")
        try:
            facts.append(
                ExtractedFact(
                    category=item.get("category"),
                    content=content,
                    confidence=default_confidence if confidence is None else confidence,
                    visibility=item.get("visibility") or "trusted",
                    evidence=str(item.get("evidence") or HOST_EVIDENCE),
                )
            )
        except ValidationError:
            logger.debug("fact_item_skipped", item=str(item)[:200])
    return facts


class FactExtractor:
    """Turns one answer into facts, via the host's facts or an LLM call."""

    def __init__(self, provider=None, min_answer_chars: int = MIN_ANSWER_CHARS, max_tokens: int = 1024):
        self._provider = provider
        self.min_answer_chars = min_answer_chars
        self.max_tokens = max_tokens

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_cheap_provider

        self._provider = create_cheap_provider()
        return self._provider

    async def extract(
        self,
        question: InterviewQuestion,
        answer: str,
        previous_facts: list[ExtractedFact],
        supplied: list[ExtractedFact] | None = None,
    ) -> ExtractionResult:
        if supplied is not None:
            return ExtractionResult(facts=list(supplied), source="host")

        if len(answer.strip()) < self.min_answer_chars:
            return ExtractionResult(error="Answer too short for meaningful extraction")

        prompt = build_extraction_prompt(question, answer, previous_facts)
        try:
            response = await self._get_provider().complete(prompt, max_tokens=self.max_tokens)
            if not response or not response.strip():
                return ExtractionResult(error="Empty response from extraction model")
            facts = parse_facts(response)
        except Exception as e:
            logger.warning("fact_extraction_failed", question_id=question.id, error=str(e))
            return ExtractionResult(error=f"Extraction failed: {e}")

        logger.debug("facts_extracted", question_id=question.id, count=len(facts))
        return ExtractionResult(facts=facts)


def generate_facts_summary(facts: list[ExtractedFact]) -> str:
    """Deterministic fallback summary when the branch generator gives none."""
    if not facts:
        return "I haven't learned much yet."

    by_category: dict[FactCategory, list[ExtractedFact]] = defaultdict(list)
    for fact in facts:
        by_category[fact.category].append(fact)

    lead = []
    core = by_category.get(FactCategory.CORE)
    if core:
        role_info = ", ".join(f.content for f in core)
        article = "" if role_info.lower().startswith("a ") else "a "
        lead.append(f"You're {article}{role_info}")

    expertise = by_category.get(FactCategory.EXPERTISE)
    if expertise:
        skills = [f.content for f in expertise[:4]]
        if len(skills) == 1:
            lead.append(f"with expertise in {skills[0]}")
        else:
            lead.append(f"with expertise in {', '.join(skills[:-1])} and {skills[-1]}")

    focus = by_category.get(FactCategory.FOCUS)
    if focus:
        lead.append(f"currently focused on {focus[0].content.lower()}")

    sentences = []
    if lead:
        first = ", ".join(lead)
        sentences.append(first[0].upper() + first[1:] + ".")

    prefs = by_category.get(FactCategory.PREFERENCE)
    if prefs:
        sentences.append(f"You prefer {prefs[0].content.lower()}.")

    if not sentences:
        return f"I've picked up {len(facts)} details about your context."
    return " ".join(sentences)
