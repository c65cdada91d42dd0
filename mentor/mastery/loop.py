"""
Mastery Loop Controller.

State machine driving one learner through one lesson:

    START -> BATTERY_READY -> AWAITING_ANSWERS -> EVALUATED
          -> PASSED (terminal)
          -> REMEDIATING -> BATTERY_READY (retry) ...
          -> ABORTED (terminal)

All mutable state lives in a caller-owned MasterySession; the controller
itself only holds its collaborators, so one MasteryLoop can drive any
number of independent sessions concurrently.

Transitions are applied only after every collaborator call they need has
succeeded and validated. A failed call leaves the session exactly as it
was, so the caller may repeat the same transition.

Usage:
    loop = MasteryLoop.from_generator(client)
    session, battery = await loop.start_session(lesson)
    verdict = await loop.submit_answers(session, answers)
    if not verdict.passed:
        print(loop.get_remediation(session).text)
        battery = await loop.retry(session)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from mentor.core.errors import PreconditionError
from mentor.core.generation_client import ContentGenerator

from .battery import BatteryBuilder
from .evaluator import ResponseEvaluator
from .models import AnswerSet, ExerciseBattery, LessonContext, RemediationContent, Verdict
from .remediation import RemediationSynthesizer


class MasteryState(str, Enum):
    """States of a mastery session."""

    START = "start"
    BATTERY_READY = "battery_ready"
    AWAITING_ANSWERS = "awaiting_answers"
    EVALUATED = "evaluated"
    PASSED = "passed"
    REMEDIATING = "remediating"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({MasteryState.PASSED, MasteryState.ABORTED})


@dataclass
class MasterySession:
    """
    Working memory of one learner-lesson mastery session.

    Owned by the caller and discarded when the loop exits; nothing here
    is persisted or shared between sessions.
    """

    original_lesson: LessonContext
    current_lesson: LessonContext | None = None
    session_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: MasteryState = MasteryState.START
    attempt_count: int = 0
    battery: ExerciseBattery | None = None
    remediation: RemediationContent | None = None
    history: list[Verdict] = field(default_factory=list)
    abort_reason: str | None = None

    def __post_init__(self) -> None:
        if self.current_lesson is None:
            self.current_lesson = self.original_lesson

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def last_verdict(self) -> Verdict | None:
        return self.history[-1] if self.history else None


class MasteryLoop:
    """
    Sequences build -> await answers -> evaluate -> remediate until mastery.

    The core imposes no attempt ceiling. Callers who want one pass
    `max_attempts`; a failed verdict on that attempt aborts the session
    (escalation to a human mentor) instead of remediating.
    """

    def __init__(
        self,
        builder: BatteryBuilder,
        evaluator: ResponseEvaluator,
        synthesizer: RemediationSynthesizer,
        max_attempts: int | None = None,
    ):
        if max_attempts is not None and max_attempts < 1:
            raise PreconditionError("max_attempts must be at least 1")
        self.builder = builder
        self.evaluator = evaluator
        self.synthesizer = synthesizer
        self.max_attempts = max_attempts

    @classmethod
    def from_generator(
        cls,
        generator: ContentGenerator,
        max_attempts: int | None = None,
    ) -> "MasteryLoop":
        """Wire all three stages to one generation service."""
        return cls(
            builder=BatteryBuilder(generator),
            evaluator=ResponseEvaluator(generator),
            synthesizer=RemediationSynthesizer(generator),
            max_attempts=max_attempts,
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def _transition(self, session: MasterySession, state: MasteryState) -> None:
        logger.info(
            f"[{session.session_id}] attempt {session.attempt_count}: "
            f"{session.state.value} -> {state.value}"
        )
        session.state = state

    def _enter_battery_ready(
        self,
        session: MasterySession,
        lesson: LessonContext,
        battery: ExerciseBattery,
    ) -> None:
        session.current_lesson = lesson
        session.battery = battery
        session.remediation = None
        session.attempt_count += 1
        self._transition(session, MasteryState.BATTERY_READY)
        # Handing the battery back to the caller is the suspension point
        self._transition(session, MasteryState.AWAITING_ANSWERS)

    def _require(self, session: MasterySession, state: MasteryState, action: str) -> None:
        if session.state != state:
            raise PreconditionError(
                f"Cannot {action} in state '{session.state.value}' "
                f"(requires '{state.value}')"
            )

    # =========================================================================
    # Session boundary
    # =========================================================================

    async def start_session(
        self, lesson: LessonContext
    ) -> tuple[MasterySession, ExerciseBattery]:
        """
        Open a session and build its first battery.

        Returns:
            The new session (now awaiting answers) and the battery to present
        """
        lesson.validate()
        session = MasterySession(original_lesson=lesson)
        battery = await self.builder.build_battery(lesson)
        self._enter_battery_ready(session, lesson, battery)
        return session, battery

    async def submit_answers(self, session: MasterySession, answers: AnswerSet) -> Verdict:
        """
        Evaluate the learner's answers to the current battery.

        On failure the session also moves on to remediation (or to ABORTED
        when the caller's attempt ceiling is reached). Remediation is built
        from this attempt's gaps only.
        """
        self._require(session, MasteryState.AWAITING_ANSWERS, "submit answers")
        assert session.battery is not None and session.current_lesson is not None

        verdict = await self.evaluator.evaluate(
            session.current_lesson.mastery_criteria,
            answers,
            battery=session.battery,
        )

        if verdict.passed:
            session.history.append(verdict)
            self._transition(session, MasteryState.EVALUATED)
            self._transition(session, MasteryState.PASSED)
            return verdict

        if self.max_attempts is not None and session.attempt_count >= self.max_attempts:
            session.history.append(verdict)
            session.abort_reason = (
                f"Mastery not reached after {session.attempt_count} attempt(s); "
                "escalate to a human mentor"
            )
            self._transition(session, MasteryState.EVALUATED)
            self._transition(session, MasteryState.ABORTED)
            logger.warning(f"[{session.session_id}] {session.abort_reason}")
            return verdict

        remediation = await self.synthesizer.remediate(session.current_lesson, verdict.gaps)

        session.history.append(verdict)
        session.remediation = remediation
        self._transition(session, MasteryState.EVALUATED)
        self._transition(session, MasteryState.REMEDIATING)
        return verdict

    def get_remediation(self, session: MasterySession) -> RemediationContent | None:
        """
        Remediation for the last failed attempt.

        Returns None while no remediation exists yet; raises once the
        session has finished.
        """
        if session.is_finished:
            raise PreconditionError(
                f"No remediation for a session in state '{session.state.value}'"
            )
        if session.state != MasteryState.REMEDIATING:
            return None
        return session.remediation

    async def retry(self, session: MasterySession) -> ExerciseBattery:
        """
        Build a fresh battery on the lesson extended with the remediation.

        Only valid after a failed attempt has been remediated.
        """
        self._require(session, MasteryState.REMEDIATING, "retry")
        assert session.remediation is not None and session.current_lesson is not None

        extended = session.current_lesson.with_remediation(
            session.remediation.text,
            attempt=session.attempt_count,
        )
        battery = await self.builder.build_battery(extended)
        self._enter_battery_ready(session, extended, battery)
        return battery

    def abort(self, session: MasterySession, reason: str = "Aborted by caller") -> None:
        """Stop a session at any non-terminal state boundary."""
        if session.is_finished:
            raise PreconditionError(f"Session already finished ({session.state.value})")
        session.abort_reason = reason
        self._transition(session, MasteryState.ABORTED)
