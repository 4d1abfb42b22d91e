"""
Configuration settings for the certprep study engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from certprep.core.domains import (
    ALL_DOMAINS,
    CISA_DOMAIN_WEIGHTS,
    EXAM_QUESTION_COUNTS,
    exam_duration_minutes,
    validate_domain_weights,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CERTPREP_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Session setup
    # ========================================
    selected_domain: str = Field(
        default=ALL_DOMAINS,
        description="Domain filter for practice sessions ('all' for no filter)",
    )
    number_of_questions: int = Field(
        default=20,
        ge=1,
        description="Questions per practice session",
    )
    exam_question_count: int = Field(
        default=150,
        description="Questions per mock exam (50, 100 or 150)",
    )
    adaptive_mode_enabled: bool = Field(
        default=False,
        description="Rank practice questions by historical weakness instead of sampling",
    )
    allow_exam_retreat: bool = Field(
        default=True,
        description="Allow going back to earlier questions during an exam",
    )

    # ─── Exam blueprint ─────────────────────────────────────────────────────────
    domain_weights: dict[str, float] = Field(
        default_factory=lambda: dict(CISA_DOMAIN_WEIGHTS),
        description="Share of exam questions per domain (must sum to 1.0)",
    )

    # ========================================
    # Storage
    # ========================================
    storage_backend: Literal["json", "sqlite", "memory"] = Field(
        default="json",
        description="Where aggregate performance is persisted",
    )
    data_dir: Path = Field(
        default=Path.home() / ".certprep",
        description="Directory for the performance store",
    )
    storage_key_prefix: str = Field(
        default="certprep_",
        description="Prefix applied to every persisted key",
    )
    question_bank_path: Path | None = Field(
        default=None,
        description="JSON file holding the raw question bank",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="Loguru level for the stderr sink",
    )

    @field_validator("exam_question_count")
    @classmethod
    def _check_exam_count(cls, value: int) -> int:
        if value not in EXAM_QUESTION_COUNTS:
            raise ValueError(f"exam_question_count must be one of {EXAM_QUESTION_COUNTS}")
        return value

    @field_validator("domain_weights")
    @classmethod
    def _check_weights(cls, value: dict[str, float]) -> dict[str, float]:
        return validate_domain_weights(value)

    @property
    def exam_duration_minutes(self) -> int:
        return exam_duration_minutes(self.exam_question_count)

    @property
    def exam_duration_seconds(self) -> int:
        return self.exam_duration_minutes * 60

    @property
    def storage_path(self) -> Path:
        """File used by the json/sqlite backends."""
        suffix = "db" if self.storage_backend == "sqlite" else "json"
        return self.data_dir / f"performance.{suffix}"

    def get_session_config(self) -> dict[str, Any]:
        """Get the session setup surface consumed by the study engine."""
        return {
            "selected_domain": self.selected_domain,
            "number_of_questions": self.number_of_questions,
            "exam_question_count": self.exam_question_count,
            "exam_duration_minutes": self.exam_duration_minutes,
            "adaptive_mode_enabled": self.adaptive_mode_enabled,
            "allow_exam_retreat": self.allow_exam_retreat,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with a compact stderr sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or get_settings().log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
