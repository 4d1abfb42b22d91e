"""
Aggregation Engine.

Folds completed sessions into the learner's cumulative performance:
- session history (newest first, append-only)
- per-domain correct/total (additive, never recomputed)
- per-question stats and the missed-question set
- bookmarks, toggled independently of sessions

Every mutation is flushed to the PerformanceStore before returning.
"""

from __future__ import annotations

from loguru import logger

from certprep.core.models import DomainTally, QuestionStat, SessionResult
from certprep.delivery.state_store import PerformanceStore


class AggregationEngine:
    """Applies session results and bookmark toggles to the store."""

    def __init__(self, store: PerformanceStore):
        self.store = store

    @property
    def performance(self):
        return self.store.performance

    def record(self, result: SessionResult) -> None:
        """
        Fold one completed session into the aggregates.

        Must be called exactly once per session; SessionEngine.finish()
        guarantees this when the engine is registered as its listener.
        """
        perf = self.store.performance

        perf.session_history.insert(0, result)

        for domain, tally in result.domain_breakdown.items():
            perf.domain_stats.setdefault(domain, DomainTally()).add(tally)

        for question_id, correct in result.outcomes.items():
            perf.question_stats.setdefault(question_id, QuestionStat()).record(correct)

        newly_missed: list[int] = []
        if result.mode.tracks_missed:
            newly_missed = [qid for qid in result.incorrect_ids if qid not in perf.missed_ids]
            perf.missed_ids.update(newly_missed)

        self.store.flush()

        logger.info(
            f"Recorded {result.mode.value} session {result.id}: {result.percentage}% "
            f"({len(newly_missed)} newly missed)"
        )

    def toggle_bookmark(self, question_id: int) -> bool:
        """
        Add or remove a bookmark.

        Returns:
            True if the question is bookmarked after the toggle
        """
        bookmarks = self.store.performance.bookmarked_ids
        if question_id in bookmarks:
            bookmarks.discard(question_id)
            bookmarked = False
        else:
            bookmarks.add(question_id)
            bookmarked = True

        self.store.flush()
        logger.debug(f"Question {question_id} {'bookmarked' if bookmarked else 'unbookmarked'}")
        return bookmarked

    def is_bookmarked(self, question_id: int) -> bool:
        return question_id in self.store.performance.bookmarked_ids
