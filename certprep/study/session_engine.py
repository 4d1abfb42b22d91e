"""
Session Engine: lifecycle of one practice or exam run.

State machine:
    NOT_STARTED -> IN_PROGRESS -> COMPLETED

- start() takes the question list chosen by the selection engine
- answer() / advance() / retreat() drive the run
- finish() scores it exactly once; later calls return the same result
- tick() is the exam clock: a cooperative poll that calls finish() when
  the deadline has passed, so manual and automatic submission share one
  code path

Listeners registered with ``on_finish`` (normally
AggregationEngine.record) are notified once per completed session.
A session replaced by a fresh start() is discarded without notification.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum

from loguru import logger

from certprep.core.domains import exam_duration_minutes
from certprep.core.errors import SessionStartError
from certprep.core.models import DomainTally, Question, SessionResult, percent, round_half_up
from certprep.core.modes import SessionMode

Clock = Callable[[], float]
FinishListener = Callable[[SessionResult], None]


class SessionState(str, Enum):
    """Lifecycle state of the engine's session."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AnswerOutcome(str, Enum):
    """Result of an answer submission."""

    ACCEPTED = "accepted"
    NOT_IN_PROGRESS = "not_in_progress"
    UNKNOWN_QUESTION = "unknown_question"
    NOT_CURRENT = "not_current"
    INVALID_OPTION = "invalid_option"
    LOCKED = "locked"

    @property
    def accepted(self) -> bool:
        return self is AnswerOutcome.ACCEPTED


def default_exam_seconds(question_count: int) -> int:
    """Time budget for an exam of ``question_count`` questions, whole minutes."""
    return exam_duration_minutes(question_count) * 60


class SessionEngine:
    """
    Owns the single active session.

    Elapsed time is attributed to whichever question is current: the
    stretch since it became current (or since its last attribution) is
    added on answer, on navigation and on finish, so revisits accumulate.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        allow_exam_retreat: bool = True,
        on_finish: FinishListener | None = None,
    ):
        """
        Initialize the engine.

        Args:
            clock: Epoch-seconds clock (defaults to time.time)
            allow_exam_retreat: Whether retreat() works in exam mode
            on_finish: Listener notified once per completed session
        """
        self._clock = clock or time.time
        self.allow_exam_retreat = allow_exam_retreat
        self._listeners: list[FinishListener] = [on_finish] if on_finish else []
        self._reset(SessionMode.PRACTICE, ())
        self.state = SessionState.NOT_STARTED

    def _reset(self, mode: SessionMode, questions: Sequence[Question]) -> None:
        self.mode = mode
        self.questions: tuple[Question, ...] = tuple(questions)
        self._by_id = {q.id: q for q in self.questions}
        self.current_index = 0
        self.answers: dict[int, int] = {}
        self.question_elapsed: dict[int, float] = {}
        self.started_at: float | None = None
        self.exam_deadline: float | None = None
        self._viewing_since: float | None = None
        self.result: SessionResult | None = None

    def add_finish_listener(self, listener: FinishListener) -> None:
        self._listeners.append(listener)

    # ========================================
    # LIFECYCLE
    # ========================================

    def start(
        self,
        questions: Sequence[Question],
        mode: SessionMode,
        exam_duration_seconds: int | None = None,
    ) -> None:
        """
        Begin a session, discarding any session already in progress.

        Args:
            questions: Ordered question list, fixed for the session
            mode: Session variant
            exam_duration_seconds: Exam time budget; derived from the
                question count when omitted

        Raises:
            SessionStartError: if ``questions`` is empty (state unchanged)
        """
        if not questions:
            raise SessionStartError(mode)

        if self.state == SessionState.IN_PROGRESS:
            logger.info(
                f"Discarding unfinished {self.mode.value} session "
                f"({len(self.answers)}/{len(self.questions)} answered)"
            )

        self._reset(mode, questions)
        now = self._clock()
        self.started_at = now
        self._viewing_since = now
        if mode.is_timed:
            duration = (
                exam_duration_seconds
                if exam_duration_seconds is not None
                else default_exam_seconds(len(self.questions))
            )
            self.exam_deadline = now + duration
        self.state = SessionState.IN_PROGRESS

        logger.info(f"Started {mode.value} session with {len(self.questions)} questions")

    def finish(self) -> SessionResult | None:
        """
        Complete the session and score it.

        Idempotent: once completed, returns the stored result without
        notifying listeners again. Returns None if nothing was started.
        """
        if self.state == SessionState.COMPLETED:
            return self.result
        if self.state == SessionState.NOT_STARTED:
            return None

        now = self._clock()
        self._attribute_time(now)
        self.state = SessionState.COMPLETED
        self.result = self._build_result(now)

        logger.info(
            f"Finished {self.mode.value} session: {self.result.correct_count}/"
            f"{self.result.total_questions} ({self.result.percentage}%)"
        )

        for listener in self._listeners:
            listener(self.result)
        return self.result

    def tick(self) -> SessionResult | None:
        """
        Exam clock poll, called at least once per second by the host.

        Returns:
            The result if this tick submitted the exam, else None
        """
        if self._deadline_passed():
            logger.info("Exam time expired, submitting")
            return self.finish()
        return None

    # ========================================
    # NAVIGATION & ANSWERS
    # ========================================

    def answer(self, question_id: int, option_index: int) -> AnswerOutcome:
        """
        Record an answer for the current question.

        Rejections leave the session unchanged.
        """
        self.tick()
        if self.state != SessionState.IN_PROGRESS:
            return AnswerOutcome.NOT_IN_PROGRESS

        question = self._by_id.get(question_id)
        if question is None:
            return AnswerOutcome.UNKNOWN_QUESTION
        if question.id != self.current_question.id:
            return AnswerOutcome.NOT_CURRENT
        if not question.has_option(option_index):
            return AnswerOutcome.INVALID_OPTION
        if self.mode.locks_answers and question_id in self.answers:
            return AnswerOutcome.LOCKED

        self.answers[question_id] = option_index
        self._attribute_time(self._clock())

        logger.debug(
            f"Answered question {question_id} with {option_index} "
            f"({'correct' if question.is_correct(option_index) else 'incorrect'})"
        )
        return AnswerOutcome.ACCEPTED

    def advance(self) -> SessionResult | None:
        """
        Move to the next question, or finish on the last one.

        Returns:
            The session result if this call finished the session, else None
        """
        self.tick()
        if self.state != SessionState.IN_PROGRESS:
            return None

        if self.current_index < len(self.questions) - 1:
            self._attribute_time(self._clock())
            self.current_index += 1
            return None
        return self.finish()

    def retreat(self) -> bool:
        """Move to the previous question. Returns True if the cursor moved."""
        self.tick()
        if self.state != SessionState.IN_PROGRESS:
            return False
        if self.mode.is_timed and not self.allow_exam_retreat:
            return False
        if self.current_index == 0:
            return False

        self._attribute_time(self._clock())
        self.current_index -= 1
        return True

    # ========================================
    # ACCESSORS
    # ========================================

    @property
    def current_question(self) -> Question | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def is_in_progress(self) -> bool:
        return self.state == SessionState.IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.state == SessionState.COMPLETED

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    def is_answered(self, question_id: int) -> bool:
        return question_id in self.answers

    def is_answer_revealed(self, question_id: int) -> bool:
        """Practice modes show correctness as soon as a question is answered."""
        return self.mode.is_practice and question_id in self.answers

    @property
    def remaining_seconds(self) -> int | None:
        """Exam countdown, floored at 0; None outside timed sessions."""
        if self.exam_deadline is None or self.state != SessionState.IN_PROGRESS:
            return None
        return max(0, int(self.exam_deadline - self._clock()))

    # ========================================
    # INTERNALS
    # ========================================

    def _deadline_passed(self) -> bool:
        return (
            self.state == SessionState.IN_PROGRESS
            and self.exam_deadline is not None
            and self._clock() >= self.exam_deadline
        )

    def _attribute_time(self, now: float) -> None:
        question = self.current_question
        if question is None or self._viewing_since is None:
            return
        spent = max(0.0, now - self._viewing_since)
        self.question_elapsed[question.id] = self.question_elapsed.get(question.id, 0.0) + spent
        self._viewing_since = now

    def _build_result(self, now: float) -> SessionResult:
        breakdown: dict[str, DomainTally] = {}
        outcomes: dict[int, bool] = {}
        correct = 0

        for question in self.questions:
            tally = breakdown.setdefault(question.domain, DomainTally())
            tally.total += 1
            chosen = self.answers.get(question.id)
            if chosen is None:
                continue
            is_correct = question.is_correct(chosen)
            outcomes[question.id] = is_correct
            if is_correct:
                tally.correct += 1
                correct += 1

        total = len(self.questions)
        elapsed_seconds = now - (self.started_at if self.started_at is not None else now)

        return SessionResult(
            id=int(now * 1000),
            timestamp=datetime.fromtimestamp(now).isoformat(),
            mode=self.mode,
            total_questions=total,
            correct_count=correct,
            percentage=percent(correct, total),
            domain_breakdown=breakdown,
            total_elapsed_minutes=round_half_up(elapsed_seconds / 60),
            per_question_elapsed={
                qid: round_half_up(seconds) for qid, seconds in self.question_elapsed.items()
            },
            answers=dict(self.answers),
            outcomes=outcomes,
        )
