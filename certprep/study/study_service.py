"""
Study Service: the engine facade for a hosting front end.

Wires together:
- the immutable question catalog
- the PerformanceStore (loaded once, flushed on every mutation)
- the AggregationEngine, registered as the SessionEngine's finish listener
- the selection functions, driven by Settings

A start_* call either starts a session or raises SessionStartError with
nothing started; the host turns that into a "nothing to practice" notice.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from loguru import logger

from config import Settings, get_settings
from certprep.content.loader import available_domains
from certprep.core.domains import exam_duration_minutes
from certprep.core.errors import SessionStartError
from certprep.core.models import Question, SessionResult
from certprep.core.modes import SessionMode
from certprep.delivery.state_store import PerformanceStore, create_backend
from certprep.study.aggregation import AggregationEngine
from certprep.study.selection import (
    ExamSelection,
    filter_by_domain,
    select_adaptive,
    select_exam_set,
    select_fixed_set,
    select_random,
)
from certprep.study.session_engine import AnswerOutcome, Clock, SessionEngine


def build_store(settings: Settings) -> PerformanceStore:
    """Create and load the configured PerformanceStore."""
    path = None if settings.storage_backend == "memory" else settings.storage_path
    backend = create_backend(settings.storage_backend, path)
    store = PerformanceStore(backend, key_prefix=settings.storage_key_prefix)
    store.load()
    return store


class StudyService:
    """
    Entry point for practice, review and exam sessions.

    Holds one SessionEngine; starting a new session discards an
    unfinished one without recording it.
    """

    def __init__(
        self,
        catalog: Sequence[Question],
        store: PerformanceStore | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the service.

        Args:
            catalog: Questions from load_questions()
            store: Loaded PerformanceStore (built from settings if omitted)
            settings: Settings (get_settings() if omitted)
            rng: Random source for selection
            clock: Clock for the session engine
        """
        self.catalog: tuple[Question, ...] = tuple(catalog)
        self.settings = settings or get_settings()
        self.store = store or build_store(self.settings)
        self.rng = rng
        self.aggregation = AggregationEngine(self.store)
        self.engine = SessionEngine(
            clock=clock,
            allow_exam_retreat=self.settings.allow_exam_retreat,
            on_finish=self.aggregation.record,
        )

    # ========================================
    # SESSION START
    # ========================================

    def start_practice(
        self,
        domain: str | None = None,
        count: int | None = None,
    ) -> list[Question]:
        """
        Start a practice session.

        Uses adaptive ranking when ``adaptive_mode_enabled`` is set,
        otherwise uniform random sampling.

        Raises:
            SessionStartError: if no question matches the domain filter
        """
        domain = domain if domain is not None else self.settings.selected_domain
        count = count if count is not None else self.settings.number_of_questions

        if self.settings.adaptive_mode_enabled:
            perf = self.store.performance
            questions = select_adaptive(
                self.catalog, domain, count, perf.domain_stats, perf.question_stats
            )
        else:
            questions = select_random(self.catalog, domain, count, rng=self.rng)

        self._start(questions, SessionMode.PRACTICE)
        return questions

    def start_incorrect_review(self) -> list[Question]:
        """Start a review of every question ever missed in practice."""
        questions = select_fixed_set(self.store.performance.missed_ids, self.catalog)
        self._start(questions, SessionMode.PRACTICE_INCORRECT)
        return questions

    def start_bookmark_review(self) -> list[Question]:
        """Start a review of bookmarked questions."""
        questions = select_fixed_set(self.store.performance.bookmarked_ids, self.catalog)
        self._start(questions, SessionMode.PRACTICE_BOOKMARKED)
        return questions

    def start_exam(self, question_count: int | None = None) -> ExamSelection:
        """
        Start a timed, domain-weighted mock exam.

        The time budget follows the requested length, even when the
        catalog can only supply a partial exam; check
        ``ExamSelection.is_partial`` to warn the learner.
        """
        count = question_count if question_count is not None else self.settings.exam_question_count
        selection = select_exam_set(
            self.catalog, count, self.settings.domain_weights, rng=self.rng
        )
        duration = exam_duration_minutes(count) * 60
        self._start(selection.questions, SessionMode.EXAM, exam_duration_seconds=duration)
        return selection

    def _start(
        self,
        questions: Sequence[Question],
        mode: SessionMode,
        exam_duration_seconds: int | None = None,
    ) -> None:
        if not questions:
            logger.warning(f"Cannot start {mode.value} session: no questions available")
            raise SessionStartError(mode)
        self.engine.start(questions, mode, exam_duration_seconds=exam_duration_seconds)

    # ========================================
    # SESSION CONTROL
    # ========================================

    def answer(self, question_id: int, option_index: int) -> AnswerOutcome:
        return self.engine.answer(question_id, option_index)

    def advance(self) -> SessionResult | None:
        return self.engine.advance()

    def retreat(self) -> bool:
        return self.engine.retreat()

    def finish(self) -> SessionResult | None:
        return self.engine.finish()

    def tick(self) -> SessionResult | None:
        return self.engine.tick()

    def toggle_bookmark(self, question_id: int) -> bool:
        return self.aggregation.toggle_bookmark(question_id)

    # ========================================
    # CATALOG QUERIES
    # ========================================

    def available_domains(self) -> list[str]:
        return available_domains(self.catalog)

    def domain_question_count(self, domain: str | None) -> int:
        """Questions available under a domain filter ("all" for the catalog)."""
        return len(filter_by_domain(self.catalog, domain))
