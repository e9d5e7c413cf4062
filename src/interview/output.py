"""Map accumulated facts into the structured identity and durable fact records.

Field mapping is a table of ordered keyword rules, evaluated per field over
the facts of one category. A single-valued field takes the first fact that
contains any keyword (keywords tried in order) and falls back to the first
fact of the category. A multi-valued field takes every matching fact, or the
whole category when nothing matches.
"""

from dataclasses import dataclass
from datetime import datetime

from memory.models import IdentityCore, IdentityFact, IdentityRecord, utcnow
from memory.similarity import similarity
from shared_types import FactCategory, Visibility

from .schema import (
    ContextIdentity,
    CoreIdentity,
    ExpertiseIdentity,
    ExtractedFact,
    InterviewIdentity,
    InterviewOutput,
    InterviewState,
    OutputMetadata,
    PreferencesIdentity,
    RawExchange,
    interview_duration_ms,
)

SENIORITY_KEYWORDS = ("senior", "lead", "principal", "staff", "director", "head", "architect")
CONCISE_KEYWORDS = ("concise", "brief", "short")
DETAILED_KEYWORDS = ("detailed", "thorough", "comprehensive")

KNOWN_PREFIXES = ("works at", "based in", "located in", "lives in")
IDENTITY_DEDUP_THRESHOLD = 0.85


@dataclass(frozen=True)
class FieldRule:
    field: str
    category: FactCategory
    keywords: tuple[str, ...] = ()


SINGLE_FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("name", FactCategory.CORE, ("name",)),
    FieldRule("role", FactCategory.CORE, ("role", "title", "position")),
    FieldRule("company", FactCategory.CONTEXT, ("company", "work at", "employed")),
    FieldRule("location", FactCategory.CONTEXT, ("location", "based in", "live in")),
    FieldRule("communication_style", FactCategory.PREFERENCE, ("style", "communication")),
)

MULTI_FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("domains", FactCategory.EXPERTISE, ("domain", "field", "industry")),
    FieldRule("technologies", FactCategory.EXPERTISE),
    FieldRule("formatting", FactCategory.PREFERENCE, ("format", "formatting")),
    FieldRule("current_focus", FactCategory.FOCUS),
    FieldRule("projects", FactCategory.FOCUS, ("project", "building", "working on")),
    FieldRule("constraints", FactCategory.CONTEXT, ("constraint", "challenge", "limitation")),
)


def extract_single(facts: list[ExtractedFact], rule: FieldRule) -> str | None:
    candidates = [f for f in facts if f.category == rule.category]
    for keyword in rule.keywords:
        for fact in candidates:
            if keyword.lower() in fact.content.lower():
                return fact.content
    return candidates[0].content if candidates else None


def extract_multiple(facts: list[ExtractedFact], rule: FieldRule) -> list[str]:
    candidates = [f for f in facts if f.category == rule.category]
    if rule.keywords:
        matched = [
            f for f in candidates if any(k.lower() in f.content.lower() for k in rule.keywords)
        ]
        if matched:
            candidates = matched
    return [f.content for f in candidates]


def infer_expertise_level(facts: list[ExtractedFact]) -> str:
    expertise = [f for f in facts if f.category == FactCategory.EXPERTISE]
    avg_confidence = sum(f.confidence for f in expertise) / (len(expertise) or 1)
    has_seniority = any(
        keyword in f.content.lower() for f in facts for keyword in SENIORITY_KEYWORDS
    )
    if has_seniority or avg_confidence > 0.8:
        return "expert"
    if avg_confidence > 0.5:
        return "intermediate"
    return "beginner"


def infer_response_length(facts: list[ExtractedFact]) -> str:
    text = " ".join(f.content.lower() for f in facts if f.category == FactCategory.PREFERENCE)
    if any(k in text for k in CONCISE_KEYWORDS):
        return "concise"
    if any(k in text for k in DETAILED_KEYWORDS):
        return "detailed"
    return "adaptive"


def build_output(state: InterviewState, now: datetime | None = None) -> InterviewOutput:
    facts = state.all_facts
    single = {rule.field: extract_single(facts, rule) for rule in SINGLE_FIELD_RULES}
    multi = {rule.field: extract_multiple(facts, rule) for rule in MULTI_FIELD_RULES}

    identity = InterviewIdentity(
        core=CoreIdentity(
            name=single["name"],
            role=single["role"],
            company=single["company"],
            location=single["location"],
        ),
        expertise=ExpertiseIdentity(
            domains=multi["domains"],
            technologies=multi["technologies"],
            level=infer_expertise_level(facts),
        ),
        preferences=PreferencesIdentity(
            communication_style=single["communication_style"],
            response_length=infer_response_length(facts),
            formatting=multi["formatting"],
        ),
        context=ContextIdentity(
            current_focus=multi["current_focus"],
            projects=multi["projects"],
            constraints=multi["constraints"],
        ),
    )

    exchanges = [*state.core_exchanges, *state.branch_exchanges]
    raw = [
        RawExchange(
            question=e.question.text,
            answer=e.answer,
            extracted_facts=[f.content for f in e.extracted_facts],
        )
        for e in exchanges
    ]
    now = now or utcnow()
    return InterviewOutput(
        identity=identity,
        raw_exchanges=raw,
        metadata=OutputMetadata(
            created_at=now,
            interview_duration_ms=interview_duration_ms(state, now),
            questions_answered=len(raw),
            facts_extracted=len(facts),
            branching_used=len(state.branch_exchanges) > 0,
        ),
    )


def strip_prefixes(value: str) -> str:
    """Remove known descriptive prefixes until none remain.

    >>> strip_prefixes("works at works at Acme")
    'Acme'
    """
    result = value.strip()
    changed = True
    while changed:
        changed = False
        for prefix in KNOWN_PREFIXES:
            if result.lower().startswith(prefix + " "):
                result = result[len(prefix) + 1 :].strip()
                changed = True
    return result


def dedupe_identity_facts(
    facts: list[IdentityFact], threshold: float = IDENTITY_DEDUP_THRESHOLD
) -> list[IdentityFact]:
    """Drop same-category near duplicates, keeping the first seen."""
    kept: list[IdentityFact] = []
    for fact in facts:
        if not any(
            k.category == fact.category and similarity(k.content, fact.content) > threshold
            for k in kept
        ):
            kept.append(fact)
    return kept


def output_to_identity(output: InterviewOutput, device_id: str | None = None) -> IdentityRecord:
    """Promote interview output into a durable identity record."""
    ident = output.identity
    now = utcnow()
    facts: list[IdentityFact] = []

    def add(category: FactCategory, content: str, confidence: float, visibility: Visibility):
        facts.append(
            IdentityFact(
                category=category,
                content=content,
                confidence=confidence,
                visibility=visibility,
                source="interview",
                last_validated=now,
                created_at=now,
            )
        )

    for value in [*ident.expertise.technologies, *ident.expertise.domains]:
        add(FactCategory.EXPERTISE, value, 0.9, Visibility.PUBLIC)

    if ident.preferences.communication_style:
        add(FactCategory.PREFERENCE, ident.preferences.communication_style, 1.0, Visibility.PUBLIC)
    add(
        FactCategory.PREFERENCE,
        f"Prefers {ident.preferences.response_length} responses",
        1.0,
        Visibility.PUBLIC,
    )
    for value in ident.preferences.formatting:
        add(FactCategory.PREFERENCE, value, 0.9, Visibility.PUBLIC)

    for value in [*ident.context.current_focus, *ident.context.projects]:
        add(FactCategory.FOCUS, value, 0.9, Visibility.TRUSTED)
    for value in ident.context.constraints:
        add(FactCategory.CONTEXT, value, 0.8, Visibility.TRUSTED)

    if ident.core.company:
        add(FactCategory.CONTEXT, f"Works at {strip_prefixes(ident.core.company)}", 1.0, Visibility.TRUSTED)
    if ident.core.location:
        add(FactCategory.CONTEXT, f"Based in {strip_prefixes(ident.core.location)}", 1.0, Visibility.TRUSTED)

    record = IdentityRecord(
        core=IdentityCore(name=ident.core.name, role=ident.core.role),
        facts=dedupe_identity_facts(facts),
        created_at=now,
        updated_at=now,
    )
    if device_id:
        record.device_id = device_id
    return record


def completion_summary(output: InterviewOutput) -> str:
    ident = output.identity
    parts = []
    if ident.core.role:
        parts.append(f"Role: {ident.core.role}")
    if ident.expertise.technologies:
        parts.append(f"Expertise: {', '.join(ident.expertise.technologies[:3])}")
    if ident.context.current_focus:
        parts.append(f"Focus: {ident.context.current_focus[0]}")
    parts.append(f"Prefers {ident.preferences.response_length} responses")
    return " | ".join(parts)
