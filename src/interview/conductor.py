"""Interview state machine.

not_started -> in_progress -> awaiting_branch_decision -> branching -> completed,
with abandoned reachable from any non-terminal state. The pending question
is always derived from exchange counts, so restoring a stored state and
replaying an answer lands on the same question the original session would.
"""

from datetime import datetime
from typing import Callable

import structlog

from memory.models import utcnow
from shared_types import InterviewStatus, QuestionPhase

from .branching import BranchQuestionGenerator
from .extractor import FactExtractor, generate_facts_summary
from .output import build_output
from .schema import (
    CORE_QUESTIONS,
    AskQuestion,
    BranchDecision,
    Complete,
    ConductorResponse,
    ExtractedFact,
    InterviewExchange,
    InterviewOutput,
    InterviewQuestion,
    InterviewState,
    OfferBranching,
    create_interview_state,
    next_core_question,
)

logger = structlog.get_logger()

DEFAULT_MAX_BRANCH_QUESTIONS = 3

_TERMINAL = (InterviewStatus.COMPLETED, InterviewStatus.ABANDONED)


class InterviewError(Exception):
    """Base class for interview flow errors."""


class IllegalTransitionError(InterviewError):
    """Operation not allowed in the session's current status."""

    def __init__(self, operation: str, status: InterviewStatus):
        self.operation = operation
        self.status = status
        super().__init__(f"Cannot {operation} while interview is {status}")


class InterviewConductor:
    """Drives one interview session: questions, extraction, branching, output.

    Args:
        extractor: turns answers into facts (LLM or host-supplied)
        branch_generator: proposes follow-up questions once core is done
        max_branch_questions: cap on follow-ups asked after "continue"
        clock: source of timestamps, injectable for deterministic replays
        state: existing state to resume from
    """

    def __init__(
        self,
        extractor: FactExtractor,
        branch_generator: BranchQuestionGenerator,
        max_branch_questions: int = DEFAULT_MAX_BRANCH_QUESTIONS,
        clock: Callable[[], datetime] = utcnow,
        state: InterviewState | None = None,
    ):
        self.extractor = extractor
        self.branch_generator = branch_generator
        self.max_branch_questions = max_branch_questions
        self.clock = clock
        self.state = state or create_interview_state(clock())
        self.output: InterviewOutput | None = None
        self._answering = False

    @property
    def status(self) -> InterviewStatus:
        return self.state.status

    def start(self) -> ConductorResponse:
        if self.state.status != InterviewStatus.NOT_STARTED:
            raise IllegalTransitionError("start", self.state.status)
        self.state.status = InterviewStatus.IN_PROGRESS
        self.state.started_at = self.clock()
        logger.info("interview.started", interview_id=self.state.id)
        return ConductorResponse(state=self.state, next=AskQuestion(question=CORE_QUESTIONS[0]))

    def current_question(self) -> InterviewQuestion | None:
        """The question the next answer responds to, or None."""
        if self.state.status == InterviewStatus.IN_PROGRESS:
            return next_core_question(self.state)
        if self.state.status == InterviewStatus.BRANCHING:
            branches = self.state.suggested_branches or []
            answered = len(self.state.branch_exchanges)
            return branches[answered] if answered < len(branches) else None
        return None

    async def answer(self, text: str) -> ConductorResponse:
        return await self._consume_answer(text, supplied=None)

    async def answer_with_facts(self, text: str, facts: list[ExtractedFact]) -> ConductorResponse:
        """Record an answer using facts the caller already extracted."""
        return await self._consume_answer(text, supplied=facts)

    async def _consume_answer(
        self, text: str, supplied: list[ExtractedFact] | None
    ) -> ConductorResponse:
        question = self.current_question()
        if question is None:
            raise IllegalTransitionError("answer", self.state.status)
        if self._answering:
            raise InterviewError("An answer is already being processed for this interview")

        self._answering = True
        try:
            result = await self.extractor.extract(
                question, text, list(self.state.all_facts), supplied=supplied
            )
        finally:
            self._answering = False

        if result.error:
            logger.info("answer_without_facts", question_id=question.id, reason=result.error)

        answered_at = self.clock()
        asked_at = self._question_asked_at()
        exchange = InterviewExchange(
            question=question,
            answer=text,
            extracted_facts=tuple(result.facts),
            answered_at=answered_at,
            duration_ms=max(0, int((answered_at - asked_at).total_seconds() * 1000)),
        )
        if question.phase == QuestionPhase.CORE:
            self.state.core_exchanges.append(exchange)
        else:
            self.state.branch_exchanges.append(exchange)
        self.state.all_facts.extend(result.facts)

        return await self._next_step()

    def _question_asked_at(self) -> datetime:
        exchanges = self.state.core_exchanges + self.state.branch_exchanges
        if exchanges:
            return max(e.answered_at for e in exchanges)
        return self.state.started_at

    async def _next_step(self) -> ConductorResponse:
        new_facts = self.state.all_facts[-10:]

        if self.state.status == InterviewStatus.IN_PROGRESS:
            question = next_core_question(self.state)
            if question is not None:
                return ConductorResponse(
                    state=self.state, next=AskQuestion(question=question), new_facts=new_facts
                )
            return await self._offer_branching()

        question = self.current_question()
        if question is not None:
            return ConductorResponse(
                state=self.state, next=AskQuestion(question=question), new_facts=new_facts
            )
        return self._complete()

    async def _offer_branching(self) -> ConductorResponse:
        branching = await self.branch_generator.generate(self.state)

        self.state.status = InterviewStatus.AWAITING_BRANCH_DECISION
        self.state.suggested_branches = list(branching.questions)
        self.state.summary = branching.summary or generate_facts_summary(self.state.all_facts)
        logger.info(
            "interview.branching_offered",
            interview_id=self.state.id,
            suggestions=len(branching.questions),
            error=branching.error,
        )
        return ConductorResponse(
            state=self.state,
            next=OfferBranching(summary=self.state.summary, suggestions=branching.questions),
            new_facts=self.state.all_facts[-5:],
        )

    async def decide_branching(self, decision: BranchDecision) -> ConductorResponse:
        if self.state.status != InterviewStatus.AWAITING_BRANCH_DECISION:
            raise IllegalTransitionError("decide branching", self.state.status)

        if decision.type == "done":
            return self._complete()

        questions = list(self.state.suggested_branches or [])
        if decision.selected_questions:
            selected = set(decision.selected_questions)
            questions = [q for q in questions if q.id in selected]
        questions = questions[: self.max_branch_questions]

        if not questions:
            return self._complete()

        self.state.status = InterviewStatus.BRANCHING
        self.state.suggested_branches = questions
        return ConductorResponse(state=self.state, next=AskQuestion(question=questions[0]))

    def _complete(self) -> ConductorResponse:
        now = self.clock()
        self.state.status = InterviewStatus.COMPLETED
        self.state.completed_at = now
        self.output = build_output(self.state, now)
        logger.info(
            "interview.completed",
            interview_id=self.state.id,
            questions_answered=self.output.metadata.questions_answered,
            facts_extracted=self.output.metadata.facts_extracted,
        )
        return ConductorResponse(state=self.state, next=Complete(output=self.output))

    def abandon(self) -> InterviewState:
        if self.state.status in _TERMINAL:
            raise IllegalTransitionError("abandon", self.state.status)
        self.state.status = InterviewStatus.ABANDONED
        logger.info("interview.abandoned", interview_id=self.state.id)
        return self.state

    def get_state(self) -> InterviewState:
        return self.state

    def restore_state(self, state: InterviewState) -> None:
        """Replace the working state wholesale (resume after restart)."""
        self.state = state
        self.output = None
