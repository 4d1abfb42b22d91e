"""
Data model for the study engine.

- Question: one immutable catalog entry
- DomainTally / QuestionStat: running correct/total counters
- SessionResult: immutable record of a completed session
- AggregatePerformance: everything persisted across sessions

Persisted types provide ``to_dict`` / ``from_dict`` for JSON storage.
JSON object keys are strings, so question ids are converted on the way in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from certprep.core.modes import SessionMode

OPTION_LETTERS = ("A", "B", "C", "D")
DEFAULT_DIFFICULTY = 3
NO_EXPLANATION = "No explanation provided."


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def percent(correct: int, total: int) -> int:
    """Whole-number percentage with half-up rounding; 0 when total is 0."""
    if total <= 0:
        return 0
    # Integer arithmetic keeps 12.5% -> 13% exact
    return (200 * correct + total) // (2 * total)


@dataclass(frozen=True)
class Question:
    """A validated multiple-choice question."""

    id: int
    text: str
    options: tuple[str, ...]
    correct_option_index: int
    domain: str
    explanation: str = NO_EXPLANATION
    difficulty: int = DEFAULT_DIFFICULTY

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_option_index

    def has_option(self, option_index: object) -> bool:
        return (
            isinstance(option_index, int)
            and not isinstance(option_index, bool)
            and 0 <= option_index < len(self.options)
        )

    @property
    def correct_letter(self) -> str:
        return OPTION_LETTERS[self.correct_option_index]

    @property
    def lettered_options(self) -> list[tuple[str, str]]:
        """Options paired with their display letters."""
        return list(zip(OPTION_LETTERS, self.options))


@dataclass
class DomainTally:
    """Correct/total counter for one domain."""

    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float | None:
        """Fraction correct, or None without any answers."""
        return self.correct / self.total if self.total > 0 else None

    @property
    def percentage(self) -> int:
        return percent(self.correct, self.total)

    def add(self, other: "DomainTally") -> None:
        self.correct += other.correct
        self.total += other.total

    def to_dict(self) -> dict:
        return {"correct": self.correct, "total": self.total}

    @classmethod
    def from_dict(cls, data: dict) -> "DomainTally":
        return cls(correct=int(data["correct"]), total=int(data["total"]))


@dataclass
class QuestionStat:
    """Answer history for one question across sessions."""

    correct_count: int = 0
    total_count: int = 0
    last_outcome_correct: bool | None = None

    @property
    def accuracy(self) -> float | None:
        return self.correct_count / self.total_count if self.total_count > 0 else None

    def record(self, correct: bool) -> None:
        self.total_count += 1
        if correct:
            self.correct_count += 1
        self.last_outcome_correct = correct

    def to_dict(self) -> dict:
        return {
            "correctCount": self.correct_count,
            "totalCount": self.total_count,
            "lastOutcomeCorrect": self.last_outcome_correct,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuestionStat":
        last = data.get("lastOutcomeCorrect")
        return cls(
            correct_count=int(data["correctCount"]),
            total_count=int(data["totalCount"]),
            last_outcome_correct=None if last is None else bool(last),
        )


@dataclass(frozen=True)
class SessionResult:
    """Score and breakdown of a completed session."""

    id: int
    timestamp: str  # ISO format
    mode: SessionMode
    total_questions: int
    correct_count: int
    percentage: int
    domain_breakdown: dict[str, DomainTally] = field(default_factory=dict)
    total_elapsed_minutes: int = 0
    per_question_elapsed: dict[int, int] = field(default_factory=dict)  # seconds

    # Answered questions only
    answers: dict[int, int] = field(default_factory=dict)
    outcomes: dict[int, bool] = field(default_factory=dict)

    @property
    def incorrect_ids(self) -> list[int]:
        return [qid for qid, correct in self.outcomes.items() if not correct]

    @property
    def unanswered_count(self) -> int:
        return self.total_questions - len(self.answers)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "date": self.timestamp,
            "mode": self.mode.value,
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_count,
            "percentage": self.percentage,
            "domainBreakdown": {d: t.to_dict() for d, t in self.domain_breakdown.items()},
            "timeSpent": self.total_elapsed_minutes,
            "questionTimes": {str(q): s for q, s in self.per_question_elapsed.items()},
            "answers": {str(q): a for q, a in self.answers.items()},
            "outcomes": {str(q): c for q, c in self.outcomes.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionResult":
        """Create from dictionary."""
        return cls(
            id=int(data["id"]),
            timestamp=str(data["date"]),
            mode=SessionMode(data["mode"]),
            total_questions=int(data["totalQuestions"]),
            correct_count=int(data["correctAnswers"]),
            percentage=int(data["percentage"]),
            domain_breakdown={
                d: DomainTally.from_dict(t) for d, t in data.get("domainBreakdown", {}).items()
            },
            total_elapsed_minutes=int(data.get("timeSpent", 0)),
            per_question_elapsed={
                int(q): int(s) for q, s in data.get("questionTimes", {}).items()
            },
            answers={int(q): int(a) for q, a in data.get("answers", {}).items()},
            outcomes={int(q): bool(c) for q, c in data.get("outcomes", {}).items()},
        )


@dataclass
class AggregatePerformance:
    """Cross-session performance owned by the PerformanceStore."""

    session_history: list[SessionResult] = field(default_factory=list)  # newest first
    domain_stats: dict[str, DomainTally] = field(default_factory=dict)
    question_stats: dict[int, QuestionStat] = field(default_factory=dict)
    bookmarked_ids: set[int] = field(default_factory=set)
    missed_ids: set[int] = field(default_factory=set)

    def domain_accuracy(self, domain: str) -> float | None:
        tally = self.domain_stats.get(domain)
        return tally.accuracy if tally else None


def serialize_ids(ids: set[int]) -> list[int]:
    return sorted(ids)


def deserialize_ids(data: Any) -> set[int]:
    if not isinstance(data, list):
        raise TypeError(f"expected a list of ids, got {type(data).__name__}")
    return {int(qid) for qid in data}
