"""
Study sessions for certification exam practice.

Provides:
- Question selection (random, review sets, weighted exams, adaptive)
- Session lifecycle and scoring
- Aggregation of results into durable performance
- Analytics over session history
"""

from certprep.study.aggregation import AggregationEngine
from certprep.study.selection import (
    ExamSelection,
    adaptive_weight,
    select_adaptive,
    select_exam_set,
    select_fixed_set,
    select_random,
)
from certprep.study.session_engine import AnswerOutcome, SessionEngine, SessionState
from certprep.study.study_service import StudyService

__all__ = [
    "AggregationEngine",
    "AnswerOutcome",
    "ExamSelection",
    "SessionEngine",
    "SessionState",
    "StudyService",
    "adaptive_weight",
    "select_adaptive",
    "select_exam_set",
    "select_fixed_set",
    "select_random",
]
