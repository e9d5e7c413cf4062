"""Interview schema: questions, exchanges, session state and final output.

Everything a session needs to resume lives in `InterviewState`, which
round-trips through JSON. There is deliberately no "current question" field:
the pending question is always derived from how many exchanges exist.
"""

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from memory.models import as_utc, clamp_confidence, utcnow
from shared_types import (
    BranchExplores,
    FactCategory,
    InterviewStatus,
    QuestionPhase,
    Visibility,
)

OUTPUT_VERSION = "1.0.0"


def coerce_category(value) -> FactCategory:
    try:
        return FactCategory(str(value).strip().lower())
    except ValueError:
        return FactCategory.CONTEXT


def coerce_visibility(value) -> Visibility:
    try:
        return Visibility(str(value).strip().lower())
    except ValueError:
        return Visibility.TRUSTED


# ── Facts ──


class ExtractedFact(BaseModel):
    """A fact pulled out of one interview answer."""

    category: FactCategory = FactCategory.CONTEXT
    content: str
    confidence: float = 0.8
    visibility: Visibility = Visibility.TRUSTED
    evidence: str = ""

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return coerce_category(v)

    @field_validator("visibility", mode="before")
    @classmethod
    def _visibility(cls, v):
        return coerce_visibility(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        return clamp_confidence(v)


# ── Questions ──


class InterviewQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    phase: QuestionPhase = QuestionPhase.CORE
    text: str
    intent: str = ""
    nudge: str | None = None


class BranchQuestion(InterviewQuestion):
    """A follow-up generated from what the core answers revealed."""

    phase: QuestionPhase = QuestionPhase.BRANCHING
    rationale: str = ""
    explores: BranchExplores = BranchExplores.GAP

    @field_validator("phase")
    @classmethod
    def _phase(cls, v: QuestionPhase) -> QuestionPhase:
        if v != QuestionPhase.BRANCHING:
            raise ValueError("branch questions must have phase 'branching'")
        return v

    @field_validator("explores", mode="before")
    @classmethod
    def _explores(cls, v):
        try:
            return BranchExplores(str(v).strip().lower())
        except ValueError:
            return BranchExplores.GAP


CORE_QUESTIONS: list[InterviewQuestion] = [
    InterviewQuestion(
        id="q1_role",
        text="What do you do?",
        intent="Extract role, domain, company, seniority",
        nudge="Feel free to share as much context as you'd like: your role, what kind of work, where you work.",
    ),
    InterviewQuestion(
        id="q2_focus",
        text="What are you working on right now?",
        intent="Extract current focus, tech stack, constraints, project context",
        nudge="What's the main thing you're building or tackling these days?",
    ),
    InterviewQuestion(
        id="q3_style",
        text="How do you like to work with AI?",
        intent="Extract communication preferences, feedback style, response format",
        nudge="For example: concise answers or detailed explanations? Code-first or discussion-first?",
    ),
    InterviewQuestion(
        id="q4_other",
        text="Anything else I should know about you?",
        intent="Catch-all for high-signal personal/professional context",
        nudge="Hobbies, side projects, things that shape how you think. Whatever feels relevant.",
    ),
]


# ── State ──


class InterviewExchange(BaseModel):
    """One answered question. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    question: Union[BranchQuestion, InterviewQuestion]
    answer: str
    extracted_facts: tuple[ExtractedFact, ...] = ()
    answered_at: datetime
    duration_ms: int = 0


class InterviewState(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: InterviewStatus = InterviewStatus.NOT_STARTED
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    core_exchanges: list[InterviewExchange] = Field(default_factory=list)
    branch_exchanges: list[InterviewExchange] = Field(default_factory=list)
    suggested_branches: list[BranchQuestion] | None = None
    all_facts: list[ExtractedFact] = Field(default_factory=list)
    summary: str | None = None

    @field_validator("started_at", "completed_at")
    @classmethod
    def _utc(cls, v):
        return as_utc(v) if v is not None else v


def create_interview_state(now: datetime | None = None) -> InterviewState:
    return InterviewState(started_at=now or utcnow())


def next_core_question(state: InterviewState) -> InterviewQuestion | None:
    answered = len(state.core_exchanges)
    if answered >= len(CORE_QUESTIONS):
        return None
    return CORE_QUESTIONS[answered]


def interview_duration_ms(state: InterviewState, now: datetime | None = None) -> int:
    end = state.completed_at or now or utcnow()
    return int((as_utc(end) - state.started_at).total_seconds() * 1000)


# ── Output ──


class CoreIdentity(BaseModel):
    name: str | None = None
    role: str | None = None
    company: str | None = None
    location: str | None = None


class ExpertiseIdentity(BaseModel):
    domains: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    level: Literal["beginner", "intermediate", "expert"] = "beginner"


class PreferencesIdentity(BaseModel):
    communication_style: str | None = None
    response_length: Literal["concise", "detailed", "adaptive"] = "adaptive"
    formatting: list[str] = Field(default_factory=list)


class ContextIdentity(BaseModel):
    current_focus: list[str] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)


class InterviewIdentity(BaseModel):
    core: CoreIdentity = Field(default_factory=CoreIdentity)
    expertise: ExpertiseIdentity = Field(default_factory=ExpertiseIdentity)
    preferences: PreferencesIdentity = Field(default_factory=PreferencesIdentity)
    context: ContextIdentity = Field(default_factory=ContextIdentity)


class RawExchange(BaseModel):
    question: str
    answer: str
    extracted_facts: list[str] = Field(default_factory=list)


class OutputMetadata(BaseModel):
    version: str = OUTPUT_VERSION
    created_at: datetime = Field(default_factory=utcnow)
    interview_duration_ms: int = 0
    questions_answered: int = 0
    facts_extracted: int = 0
    branching_used: bool = False


class InterviewOutput(BaseModel):
    identity: InterviewIdentity = Field(default_factory=InterviewIdentity)
    raw_exchanges: list[RawExchange] = Field(default_factory=list)
    metadata: OutputMetadata = Field(default_factory=OutputMetadata)


# ── Conductor I/O ──


class BranchDecision(BaseModel):
    type: Literal["continue", "done"]
    selected_questions: list[str] | None = None

    @classmethod
    def done(cls) -> "BranchDecision":
        return cls(type="done")

    @classmethod
    def proceed(cls, selected_questions: list[str] | None = None) -> "BranchDecision":
        return cls(type="continue", selected_questions=selected_questions)


class AskQuestion(BaseModel):
    type: Literal["ask_question"] = "ask_question"
    question: Union[BranchQuestion, InterviewQuestion]


class OfferBranching(BaseModel):
    type: Literal["offer_branching"] = "offer_branching"
    summary: str
    suggestions: list[BranchQuestion] = Field(default_factory=list)


class Complete(BaseModel):
    type: Literal["complete"] = "complete"
    output: InterviewOutput


NextStep = Annotated[Union[AskQuestion, OfferBranching, Complete], Field(discriminator="type")]


class ConductorResponse(BaseModel):
    state: InterviewState
    next: NextStep
    new_facts: list[ExtractedFact] = Field(default_factory=list)
