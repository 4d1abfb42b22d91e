"""
Core types for the study engine.

Exports:
    SessionMode
    Question, DomainTally, QuestionStat, SessionResult, AggregatePerformance
    normalize_domain, CISA_DOMAIN_WEIGHTS
    CertPrepError, SessionStartError
"""

from certprep.core.domains import (
    ALL_DOMAINS,
    CISA_DOMAIN_WEIGHTS,
    DEFAULT_DOMAIN,
    is_all_domains,
    normalize_domain,
    validate_domain_weights,
)
from certprep.core.errors import CertPrepError, SessionStartError
from certprep.core.models import (
    AggregatePerformance,
    DomainTally,
    Question,
    QuestionStat,
    SessionResult,
    percent,
    round_half_up,
)
from certprep.core.modes import SessionMode

__all__ = [
    # Domains
    "ALL_DOMAINS",
    "CISA_DOMAIN_WEIGHTS",
    "DEFAULT_DOMAIN",
    "is_all_domains",
    "normalize_domain",
    "validate_domain_weights",
    # Modes
    "SessionMode",
    # Model
    "AggregatePerformance",
    "DomainTally",
    "Question",
    "QuestionStat",
    "SessionResult",
    "percent",
    "round_half_up",
    # Errors
    "CertPrepError",
    "SessionStartError",
]
