"""Guided onboarding interview: questions, fact extraction, branching, output."""

from .branching import BranchingResult, BranchQuestionGenerator
from .conductor import IllegalTransitionError, InterviewConductor, InterviewError
from .extractor import ExtractionResult, FactExtractor, facts_from_host, generate_facts_summary
from .output import build_output, completion_summary, output_to_identity, strip_prefixes
from .schema import (
    CORE_QUESTIONS,
    BranchDecision,
    BranchQuestion,
    ConductorResponse,
    ExtractedFact,
    InterviewOutput,
    InterviewQuestion,
    InterviewState,
)
from .session import OnboardingService, OnboardResult
from .storage import InterviewStateStorage

__all__ = [
    "CORE_QUESTIONS",
    "BranchDecision",
    "BranchQuestion",
    "BranchQuestionGenerator",
    "BranchingResult",
    "ConductorResponse",
    "ExtractedFact",
    "ExtractionResult",
    "FactExtractor",
    "IllegalTransitionError",
    "InterviewConductor",
    "InterviewError",
    "InterviewOutput",
    "InterviewQuestion",
    "InterviewState",
    "InterviewStateStorage",
    "OnboardResult",
    "OnboardingService",
    "build_output",
    "completion_summary",
    "facts_from_host",
    "generate_facts_summary",
    "output_to_identity",
    "strip_prefixes",
]
