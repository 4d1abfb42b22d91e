"""
Question Bank Loader.

Transforms raw imported records into validated Question entities.

Raw records come straight from a spreadsheet export, so the loader is
lenient by policy: a malformed field gets its documented default instead
of failing the whole bank.

- Options: non-blank OptionA..OptionD, in that order
- CorrectAnswer: letter A-D (any case/spacing); anything else means A
- Domain: canonical casing via normalize_domain
- Difficulty: integer 1-5, otherwise 3
- id: the record's own positive id, otherwise its 1-based position
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from certprep.core.domains import normalize_domain
from certprep.core.models import DEFAULT_DIFFICULTY, NO_EXPLANATION, OPTION_LETTERS, Question


class RawQuestionRecord(BaseModel):
    """One record of the imported question bank."""

    model_config = ConfigDict(extra="ignore")

    id: Any = None
    question: str | None = Field(None, validation_alias=AliasChoices("Question", "question"))
    option_a: str | None = Field(None, validation_alias=AliasChoices("OptionA", "option_a"))
    option_b: str | None = Field(None, validation_alias=AliasChoices("OptionB", "option_b"))
    option_c: str | None = Field(None, validation_alias=AliasChoices("OptionC", "option_c"))
    option_d: str | None = Field(None, validation_alias=AliasChoices("OptionD", "option_d"))
    correct_answer: str | None = Field(
        None, validation_alias=AliasChoices("CorrectAnswer", "correct_answer")
    )
    domain: str | None = Field(None, validation_alias=AliasChoices("Domain", "domain"))
    explanation: str | None = Field(
        None, validation_alias=AliasChoices("Explanation", "explanation")
    )
    difficulty: Any = Field(None, validation_alias=AliasChoices("Difficulty", "difficulty"))

    @field_validator(
        "question",
        "option_a",
        "option_b",
        "option_c",
        "option_d",
        "correct_answer",
        "domain",
        "explanation",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        # Spreadsheet exports turn numeric cells into ints/floats
        if value is None:
            return None
        return str(value)

    @property
    def options(self) -> list[str]:
        raw = (self.option_a, self.option_b, self.option_c, self.option_d)
        return [opt.strip() for opt in raw if opt and opt.strip()]


def parse_correct_index(letter: str | None, option_count: int) -> int:
    """Map a correct-answer letter to an option index, defaulting to 0."""
    key = (letter or OPTION_LETTERS[0]).strip().upper()
    if key not in OPTION_LETTERS:
        return 0
    index = OPTION_LETTERS.index(key)
    return index if index < option_count else 0


def parse_difficulty(value: Any) -> int:
    """Parse a 1-5 difficulty; anything unusable becomes 3."""
    if value is None or isinstance(value, bool):
        return DEFAULT_DIFFICULTY
    try:
        number = float(str(value).strip())
    except ValueError:
        return DEFAULT_DIFFICULTY
    if not math.isfinite(number):
        return DEFAULT_DIFFICULTY
    level = int(number)
    return level if 1 <= level <= 5 else DEFAULT_DIFFICULTY


def parse_question_id(value: Any, position: int) -> int:
    """Use the record's id when it is a positive integer, else its position."""
    if value is None or isinstance(value, bool):
        return position
    text = str(value).strip()
    try:
        # Exact for ids of any size
        whole = int(text)
    except ValueError:
        pass
    else:
        return whole if whole >= 1 else position
    try:
        number = float(text)
    except ValueError:
        return position
    if not math.isfinite(number) or not number.is_integer() or number < 1:
        return position
    return int(number)


def build_question(raw: Any, position: int) -> Question | None:
    """
    Build one Question from a raw record.

    Returns None only when the record has no options at all, since no
    default can make its correct answer resolvable.
    """
    try:
        record = RawQuestionRecord.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Question record #{position} is malformed, using defaults: {e}")
        record = RawQuestionRecord()

    options = record.options
    if not options:
        logger.warning(f"Skipping question record #{position}: no answer options")
        return None

    correct_index = parse_correct_index(record.correct_answer, len(options))
    if correct_index == 0 and (record.correct_answer or "A").strip().upper() != "A":
        logger.debug(
            f"Question record #{position}: correct answer {record.correct_answer!r} "
            f"is not usable, defaulting to A"
        )

    explanation = (record.explanation or "").strip() or NO_EXPLANATION

    return Question(
        id=parse_question_id(record.id, position),
        text=(record.question or "").strip(),
        options=tuple(options),
        correct_option_index=correct_index,
        domain=normalize_domain(record.domain),
        explanation=explanation,
        difficulty=parse_difficulty(record.difficulty),
    )


def load_questions(records: Iterable[Any]) -> list[Question]:
    """
    Transform raw records into the immutable question catalog.

    Args:
        records: Raw records in source order (mappings with the bank's fields)

    Returns:
        Validated questions, in source order
    """
    catalog = []
    skipped = 0
    for position, raw in enumerate(records, start=1):
        question = build_question(raw, position)
        if question is None:
            skipped += 1
            continue
        catalog.append(question)

    logger.info(
        f"Loaded {len(catalog)} questions across {len(available_domains(catalog))} domains"
        + (f" ({skipped} skipped)" if skipped else "")
    )
    return catalog


def load_question_file(path: Path | str) -> list[Question]:
    """Load a question bank stored as a JSON array of records."""
    filepath = Path(path)
    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"{filepath} must contain a JSON array of question records")
    return load_questions(data)


def available_domains(catalog: Iterable[Question]) -> list[str]:
    """Distinct domains in first-seen order."""
    seen: dict[str, None] = {}
    for question in catalog:
        seen.setdefault(question.domain, None)
    return list(seen)
