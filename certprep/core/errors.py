"""Exceptions raised by the study engine."""

from __future__ import annotations

from certprep.core.modes import SessionMode


class CertPrepError(Exception):
    """Base class for study engine errors."""
    pass


class SessionStartError(CertPrepError):
    """Raised when a session cannot start because it has no questions."""

    def __init__(self, mode: SessionMode, message: str | None = None):
        self.mode = mode
        super().__init__(message or f"No questions available for {mode.label.lower()} mode")
