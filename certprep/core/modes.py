"""
Session modes.

A session is one of four variants. Behavior that differs between them is
exposed as derived capabilities so callers never branch on mode strings.
"""

from __future__ import annotations

from enum import Enum


class SessionMode(str, Enum):
    """Variant of a study session."""

    PRACTICE = "practice"
    PRACTICE_INCORRECT = "practice-incorrect"
    PRACTICE_BOOKMARKED = "practice-bookmarked"
    EXAM = "exam"

    @property
    def is_practice(self) -> bool:
        """Practice variants reveal the answer immediately."""
        return self is not SessionMode.EXAM

    @property
    def locks_answers(self) -> bool:
        """Whether the first accepted answer to a question is final."""
        return self.is_practice

    @property
    def is_timed(self) -> bool:
        return self is SessionMode.EXAM

    @property
    def tracks_missed(self) -> bool:
        """Wrong answers in this mode feed the incorrect-review set."""
        return self.is_practice

    @property
    def label(self) -> str:
        """Display label, e.g. ``"Practice Incorrect"``."""
        return " ".join(part.capitalize() for part in self.value.split("-"))
