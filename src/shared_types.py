"""Shared enums and types for persona."""

from enum import StrEnum


class FactCategory(StrEnum):
    CORE = "core"
    EXPERTISE = "expertise"
    PREFERENCE = "preference"
    CONTEXT = "context"
    FOCUS = "focus"


class Visibility(StrEnum):
    PUBLIC = "public"
    TRUSTED = "trusted"
    LOCAL = "local"


class Maturity(StrEnum):
    CANDIDATE = "candidate"
    ESTABLISHED = "established"
    PROVEN = "proven"


class InterviewStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    AWAITING_BRANCH_DECISION = "awaiting_branch_decision"
    BRANCHING = "branching"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class QuestionPhase(StrEnum):
    CORE = "core"
    BRANCHING = "branching"


class BranchExplores(StrEnum):
    GAP = "gap"
    DEPTH = "depth"
    CLARIFICATION = "clarification"


class ContextEventType(StrEnum):
    PAGE_VISIT = "page_visit"
    SELECTION = "selection"
    CONVERSATION = "conversation"
    INSIGHT = "insight"
    FILE = "file"
