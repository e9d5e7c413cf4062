"""Onboarding service: the stateful front for interview sessions.

Keeps at most one in-memory conductor per interview id and rebuilds one
from stored state when the process restarted between turns. Completed
interviews are promoted to the durable identity record.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import httpx
import structlog

from memory.models import IdentityRecord, utcnow
from memory.sources import RemoteFactSource
from memory.storage import IdentityStorage, PersistenceError
from shared_types import InterviewStatus, QuestionPhase

from .branching import BranchQuestionGenerator
from .conductor import DEFAULT_MAX_BRANCH_QUESTIONS, InterviewConductor, InterviewError
from .extractor import HOST_FACT_CONFIDENCE, FactExtractor, facts_from_host
from .output import completion_summary, output_to_identity
from .schema import (
    CORE_QUESTIONS,
    BranchDecision,
    BranchQuestion,
    ConductorResponse,
    InterviewQuestion,
    InterviewState,
)
from .storage import InterviewStateStorage

logger = structlog.get_logger()


@dataclass
class QuestionPrompt:
    id: str
    text: str
    number: int
    total: int
    intent: str = ""
    nudge: str | None = None


@dataclass
class OnboardResult:
    phase: str  # starting | questioning | branching | complete
    interview_id: str | None = None
    question: QuestionPrompt | None = None
    summary: str = ""
    suggestions: list[BranchQuestion] = field(default_factory=list)
    recent_facts: list[str] = field(default_factory=list)
    facts_extracted: int = 0
    identity: IdentityRecord | None = None
    message: str = ""
    warning: str | None = None


def question_prompt(question: InterviewQuestion, state: InterviewState) -> QuestionPrompt:
    core_total = len(CORE_QUESTIONS)
    if question.phase == QuestionPhase.CORE:
        number, total = len(state.core_exchanges) + 1, core_total
    else:
        number = len(state.core_exchanges) + len(state.branch_exchanges) + 1
        total = core_total + len(state.suggested_branches or [])
    return QuestionPrompt(
        id=question.id,
        text=question.text,
        number=number,
        total=total,
        intent=question.intent,
        nudge=question.nudge,
    )


class OnboardingService:
    def __init__(
        self,
        extractor: FactExtractor,
        branch_generator: BranchQuestionGenerator,
        state_storage: InterviewStateStorage,
        identity_storage: IdentityStorage,
        remote: RemoteFactSource | None = None,
        max_branch_questions: int = DEFAULT_MAX_BRANCH_QUESTIONS,
        host_fact_confidence: float = HOST_FACT_CONFIDENCE,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.extractor = extractor
        self.branch_generator = branch_generator
        self.state_storage = state_storage
        self.identity_storage = identity_storage
        self.remote = remote
        self.max_branch_questions = max_branch_questions
        self.host_fact_confidence = host_fact_confidence
        self.clock = clock
        self._active: dict[str, InterviewConductor] = {}

    def _new_conductor(self, state: InterviewState | None = None) -> InterviewConductor:
        conductor = InterviewConductor(
            self.extractor,
            self.branch_generator,
            max_branch_questions=self.max_branch_questions,
            clock=self.clock,
        )
        if state is not None:
            conductor.restore_state(state)
        return conductor

    def _save_state(self, state: InterviewState) -> None:
        try:
            self.state_storage.save(state)
        except PersistenceError as e:
            # Resume becomes unavailable; the live session continues.
            logger.warning("interview_state_save_failed", interview_id=state.id, error=str(e))

    def _conductor_for(self, interview_id: str | None) -> InterviewConductor:
        if interview_id and interview_id in self._active:
            return self._active[interview_id]

        state = self.state_storage.load(interview_id) if interview_id else self.state_storage.latest()
        if state is None or state.status in (InterviewStatus.COMPLETED, InterviewStatus.ABANDONED):
            raise InterviewError("No active interview. Start one first.")
        if state.id in self._active:
            return self._active[state.id]

        conductor = self._new_conductor(state)
        self._active[state.id] = conductor
        logger.info("interview.restored", interview_id=state.id, status=str(state.status))
        return conductor

    def _existing_identity(self) -> IdentityRecord | None:
        identity = self.identity_storage.load()
        return identity if identity and identity.facts else None

    def start(self) -> OnboardResult:
        existing = self._existing_identity()
        if existing:
            return OnboardResult(
                phase="complete",
                facts_extracted=len(existing.facts),
                identity=existing,
                message=(
                    f"Already have {len(existing.facts)} facts stored. "
                    f"Delete {self.identity_storage.path} to start fresh."
                ),
            )

        conductor = self._new_conductor()
        response = conductor.start()
        self._active[response.state.id] = conductor
        self._save_state(response.state)
        return question_result(response)

    def pending_question(self, interview_id: str | None = None) -> QuestionPrompt | None:
        """The question awaiting an answer in the resumable session, if any."""
        conductor = self._conductor_for(interview_id)
        question = conductor.current_question()
        return question_prompt(question, conductor.state) if question else None

    async def answer(
        self,
        text: str,
        facts: list[dict] | None = None,
        interview_id: str | None = None,
    ) -> OnboardResult:
        """Answer the pending question, with host-extracted facts when given."""
        if not text or not text.strip():
            raise InterviewError("No answer provided")

        conductor = self._conductor_for(interview_id)
        if facts:
            response = await conductor.answer_with_facts(text, facts_from_host(facts, self.host_fact_confidence))
        else:
            response = await conductor.answer(text)
        return await self._handle(response)

    async def branch(
        self,
        proceed: bool,
        selected_questions: list[str] | None = None,
        interview_id: str | None = None,
    ) -> OnboardResult:
        conductor = self._conductor_for(interview_id)
        decision = BranchDecision.proceed(selected_questions) if proceed else BranchDecision.done()
        response = await conductor.decide_branching(decision)
        return await self._handle(response)

    def status(self) -> OnboardResult:
        existing = self._existing_identity()
        if existing:
            return OnboardResult(
                phase="complete",
                facts_extracted=len(existing.facts),
                identity=existing,
                message=f"Identity already configured with {len(existing.facts)} facts.",
            )

        pending = self.state_storage.latest()
        if pending and pending.status not in (InterviewStatus.COMPLETED, InterviewStatus.ABANDONED):
            phase = (
                "branching"
                if pending.status == InterviewStatus.AWAITING_BRANCH_DECISION
                else "questioning"
            )
            return OnboardResult(
                phase=phase,
                interview_id=pending.id,
                summary=pending.summary or "",
                suggestions=list(pending.suggested_branches or []),
                facts_extracted=len(pending.all_facts),
                message=(
                    f"Interview in progress ({len(pending.core_exchanges)}/{len(CORE_QUESTIONS)} "
                    "questions answered)."
                ),
            )

        return OnboardResult(phase="starting", message="No identity configured.")

    async def _handle(self, response: ConductorResponse) -> OnboardResult:
        state = response.state
        step = response.next
        if step.type == "complete":
            return await self._finish(response)

        await asyncio.to_thread(self._save_state, state)
        if step.type == "offer_branching":
            return OnboardResult(
                phase="branching",
                interview_id=state.id,
                summary=step.summary,
                suggestions=list(step.suggestions),
                recent_facts=[f.content for f in response.new_facts[-5:]],
                facts_extracted=len(state.all_facts),
            )
        return question_result(response)

    async def _finish(self, response: ConductorResponse) -> OnboardResult:
        state = response.state
        output = response.next.output
        identity = output_to_identity(output)
        self._active.pop(state.id, None)

        warning = None
        try:
            await asyncio.to_thread(self.identity_storage.save, identity)
        except PersistenceError as e:
            logger.error("identity_save_failed", interview_id=state.id, error=str(e))
            warning = f"Interview finished but the identity could not be saved: {e}"
            await asyncio.to_thread(self._save_state, state)
        else:
            try:
                await asyncio.to_thread(self.state_storage.clear, state.id)
            except PersistenceError as e:
                logger.warning("interview_state_clear_failed", interview_id=state.id, error=str(e))

        if self.remote is not None and warning is None:
            try:
                await self.remote.save_identity(identity)
            except httpx.HTTPError as e:
                # Local save is authoritative.
                logger.warning("remote_identity_sync_failed", error=str(e))

        return OnboardResult(
            phase="complete",
            interview_id=state.id,
            facts_extracted=len(identity.facts),
            identity=identity,
            summary=completion_summary(output),
            warning=warning,
        )


def question_result(response: ConductorResponse) -> OnboardResult:
    """Result for an ask_question step."""
    question = response.next.question
    return OnboardResult(
        phase="questioning",
        interview_id=response.state.id,
        question=question_prompt(question, response.state),
        recent_facts=[f.content for f in response.new_facts[-5:]],
        facts_extracted=len(response.state.all_facts),
    )
