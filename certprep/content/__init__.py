"""Question bank loading."""

from certprep.content.loader import (
    RawQuestionRecord,
    available_domains,
    load_question_file,
    load_questions,
)

__all__ = [
    "RawQuestionRecord",
    "available_domains",
    "load_question_file",
    "load_questions",
]
