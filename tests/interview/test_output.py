"""Tests for output building and identity promotion."""

import pytest

from interview.output import (
    MULTI_FIELD_RULES,
    SINGLE_FIELD_RULES,
    FieldRule,
    build_output,
    completion_summary,
    dedupe_identity_facts,
    extract_multiple,
    extract_single,
    infer_expertise_level,
    infer_response_length,
    output_to_identity,
    strip_prefixes,
)
from interview.schema import (
    CORE_QUESTIONS,
    CoreIdentity,
    ExtractedFact,
    InterviewExchange,
    InterviewIdentity,
    InterviewOutput,
    create_interview_state,
)
from memory.models import IdentityFact
from shared_types import FactCategory


def fact(category, content, confidence=0.8):
    return ExtractedFact(category=category, content=content, confidence=confidence)


class TestFieldRules:
    def test_keyword_order_wins_over_fact_order(self):
        facts = [fact("core", "Based in Lisbon"), fact("core", "Job title: Staff engineer")]
        rule = FieldRule("role", FactCategory.CORE, ("role", "title", "position"))
        assert extract_single(facts, rule) == "Job title: Staff engineer"

    def test_single_falls_back_to_first_in_category(self):
        facts = [fact("expertise", "Rust"), fact("core", "Designer"), fact("core", "Ana")]
        rule = FieldRule("role", FactCategory.CORE, ("role",))
        assert extract_single(facts, rule) == "Designer"

    def test_single_none_without_category_facts(self):
        assert extract_single([fact("focus", "x")], SINGLE_FIELD_RULES[0]) is None

    def test_multiple_filters_by_keyword_when_any_match(self):
        facts = [fact("focus", "Launching v2"), fact("focus", "Side project: a CLI")]
        rule = FieldRule("projects", FactCategory.FOCUS, ("project",))
        assert extract_multiple(facts, rule) == ["Side project: a CLI"]

    def test_multiple_keeps_all_when_none_match(self):
        facts = [fact("focus", "Launching v2"), fact("focus", "Hiring")]
        rule = FieldRule("projects", FactCategory.FOCUS, ("project",))
        assert extract_multiple(facts, rule) == ["Launching v2", "Hiring"]

    def test_rule_tables_cover_identity_fields(self):
        fields = {r.field for r in SINGLE_FIELD_RULES} | {r.field for r in MULTI_FIELD_RULES}
        assert {"name", "role", "company", "location", "technologies", "constraints"} <= fields


class TestInference:
    def test_seniority_keyword_means_expert(self):
        facts = [fact("core", "Principal engineer"), fact("expertise", "Go", 0.2)]
        assert infer_expertise_level(facts) == "expert"

    @pytest.mark.parametrize(
        "confidences, level",
        [([0.9, 1.0], "expert"), ([0.6, 0.6], "intermediate"), ([0.5], "beginner"), ([], "beginner")],
    )
    def test_level_from_average_confidence(self, confidences, level):
        facts = [fact("expertise", f"skill {i}", c) for i, c in enumerate(confidences)]
        assert infer_expertise_level(facts) == level

    @pytest.mark.parametrize(
        "content, length",
        [
            ("Prefers brief replies", "concise"),
            ("Likes thorough explanations", "detailed"),
            ("Code first", "adaptive"),
        ],
    )
    def test_response_length(self, content, length):
        assert infer_response_length([fact("preference", content)]) == length

    def test_response_length_ignores_other_categories(self):
        assert infer_response_length([fact("context", "Short on time")]) == "adaptive"


class TestBuildOutput:
    def test_builds_identity_and_metadata(self, now):
        state = create_interview_state(now)
        facts = [
            fact("core", "Role: data scientist"),
            fact("context", "Works at Acme"),
            fact("expertise", "Python"),
            fact("preference", "Concise answers"),
            fact("focus", "Building a churn model"),
        ]
        for question, chunk in zip(CORE_QUESTIONS, [facts[:2], facts[2:3], facts[3:4], facts[4:]]):
            state.core_exchanges.append(
                InterviewExchange(
                    question=question,
                    answer="answer",
                    extracted_facts=tuple(chunk),
                    answered_at=now,
                )
            )
        state.all_facts = facts

        output = build_output(state, now)
        assert output.identity.core.role == "Role: data scientist"
        assert output.identity.core.company == "Works at Acme"
        assert output.identity.expertise.technologies == ["Python"]
        assert output.identity.preferences.response_length == "concise"
        assert output.identity.context.projects == ["Building a churn model"]
        assert output.raw_exchanges[0].extracted_facts == ["Role: data scientist", "Works at Acme"]
        assert output.metadata.questions_answered == 4
        assert output.metadata.facts_extracted == 5
        assert output.metadata.interview_duration_ms == 0


class TestIdentityPromotion:
    @pytest.mark.parametrize(
        "raw, clean",
        [
            ("works at works at Acme", "Acme"),
            ("Works at Based in Acme", "Acme"),
            ("  lives in Porto ", "Porto"),
            ("Acme", "Acme"),
            ("Worksat Acme", "Worksat Acme"),
        ],
    )
    def test_strip_prefixes(self, raw, clean):
        assert strip_prefixes(raw) == clean

    def test_company_and_location_reprefixed(self):
        output = InterviewOutput(
            identity=InterviewIdentity(
                core=CoreIdentity(company="works at works at Acme", location="based in Berlin")
            )
        )
        record = output_to_identity(output, device_id="dev-1")
        contents = [f.content for f in record.facts]
        assert "Works at Acme" in contents
        assert "Based in Berlin" in contents
        assert record.device_id == "dev-1"
        assert record.version == "2.0.0"

    def test_same_category_duplicates_removed_keeping_first(self):
        facts = [
            IdentityFact(category="expertise", content="Python data engineering at scale daily"),
            IdentityFact(category="expertise", content="python data engineering at scale daily"),
            IdentityFact(category="context", content="Python data engineering at scale daily"),
        ]
        kept = dedupe_identity_facts(facts)
        assert [f.id for f in kept] == [facts[0].id, facts[2].id]

    def test_near_duplicates_below_threshold_kept(self):
        facts = [
            IdentityFact(category="preference", content="Prefers concise responses"),
            IdentityFact(category="preference", content="Prefers concise code responses"),
        ]
        assert len(dedupe_identity_facts(facts)) == 2

    def test_completion_summary(self):
        output = InterviewOutput()
        output.identity.core.role = "PM"
        output.identity.expertise.technologies = ["SQL", "Figma", "Python", "Go"]
        output.identity.context.current_focus = ["Pricing launch"]
        assert completion_summary(output) == (
            "Role: PM | Expertise: SQL, Figma, Python | Focus: Pricing launch | "
            "Prefers adaptive responses"
        )
