"""
Analytics read-model over aggregate performance.

Everything here is a pure read of session history or domain stats, used
by the host's dashboard: headline numbers, per-domain accuracy, the
score trend, and a coarse pass-likelihood label.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date

from certprep.core.models import DomainTally, SessionResult, round_half_up

# Passing-likelihood bands by session percentage
PASS_BANDS = (
    (50, "Low"),
    (65, "Moderate"),
    (75, "High"),
)
TOP_BAND = "Very High"


@dataclass
class OverallStats:
    """Headline numbers across all recorded sessions."""

    average_score: int
    total_sessions: int
    total_questions: int


@dataclass
class DomainAccuracy:
    """Accuracy row for one domain."""

    domain: str
    correct: int
    total: int
    percentage: int


def overall_stats(history: Sequence[SessionResult]) -> OverallStats:
    if not history:
        return OverallStats(average_score=0, total_sessions=0, total_questions=0)
    average = sum(r.percentage for r in history) / len(history)
    return OverallStats(
        average_score=round_half_up(average),
        total_sessions=len(history),
        total_questions=sum(r.total_questions for r in history),
    )


def domain_accuracy(domain_stats: Mapping[str, DomainTally]) -> list[DomainAccuracy]:
    """Per-domain accuracy rows, in stored order."""
    return [
        DomainAccuracy(
            domain=domain,
            correct=tally.correct,
            total=tally.total,
            percentage=tally.percentage,
        )
        for domain, tally in domain_stats.items()
    ]


def weakest_domains(domain_stats: Mapping[str, DomainTally], limit: int = 3) -> list[DomainAccuracy]:
    """Domains with answers, lowest accuracy first."""
    rows = [row for row in domain_accuracy(domain_stats) if row.total > 0]
    rows.sort(key=lambda row: row.correct / row.total)
    return rows[:limit]


def progress_series(history: Sequence[SessionResult]) -> list[tuple[str, int]]:
    """
    Score trend, oldest session first.

    Returns:
        Points like [("S1", 60), ("S2", 72), ...]
    """
    return [
        (f"S{index}", result.percentage)
        for index, result in enumerate(reversed(history), start=1)
    ]


def passing_probability(percentage: int) -> str:
    """Coarse label for how likely this score is to pass the real exam."""
    for upper, label in PASS_BANDS:
        if percentage < upper:
            return label
    return TOP_BAND


def format_time(seconds: int) -> str:
    """Format a countdown as HH:MM:SS."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def days_until_exam(exam_date: date | None, today: date | None = None) -> int | None:
    """Days left before the scheduled exam (negative once it has passed)."""
    if exam_date is None:
        return None
    return (exam_date - (today or date.today())).days
