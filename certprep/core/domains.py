"""
Knowledge-domain labels and the exam blueprint.

Raw question banks spell domain names inconsistently ("GOVERNANCE and
management of IT", extra spaces, ...). Every label is collapsed to one
canonical form before it is compared with the weight table below.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from certprep.core.models import round_half_up

ALL_DOMAINS = "all"
DEFAULT_DOMAIN = "General"

EXAM_QUESTION_COUNTS = (50, 100, 150)
FULL_EXAM_QUESTIONS = 150
FULL_EXAM_MINUTES = 240

# CISA job practice areas and their share of a full exam
CISA_DOMAIN_WEIGHTS: dict[str, float] = {
    "Information System Auditing Process": 0.18,
    "Governance And Management Of It": 0.18,
    "Information Systems Acquisition, Development And Implementation": 0.12,
    "Information Systems Operations And Business Resilience": 0.26,
    "Protection Of Information Assets": 0.26,
}


def normalize_domain(raw: object) -> str:
    """
    Canonicalize a domain label.

    Each whitespace-separated token is lowercased and its first character
    upper-cased, then tokens are joined with single spaces. Blank or
    missing labels map to ``DEFAULT_DOMAIN``.

    >>> normalize_domain("  governance and management of IT ")
    'Governance And Management Of It'
    """
    if raw is None:
        return DEFAULT_DOMAIN
    tokens = str(raw).split()
    if not tokens:
        return DEFAULT_DOMAIN
    return " ".join(token.lower().capitalize() for token in tokens)


def is_all_domains(domain_filter: str | None) -> bool:
    """True when the filter selects the whole catalog."""
    return domain_filter is None or domain_filter.strip().lower() == ALL_DOMAINS


def exam_duration_minutes(question_count: int) -> int:
    """Exam time budget, scaled from the 240-minute/150-question full exam."""
    return round_half_up(question_count / FULL_EXAM_QUESTIONS * FULL_EXAM_MINUTES)


def validate_domain_weights(weights: Mapping[str, float]) -> dict[str, float]:
    """
    Normalize weight-table keys and check the table is a distribution.

    Raises:
        ValueError: on negative weights, colliding labels, or a total
            that is not 1.0.
    """
    normalized: dict[str, float] = {}
    for label, weight in weights.items():
        key = normalize_domain(label)
        if key in normalized:
            raise ValueError(f"Domain weight table lists '{key}' more than once")
        if weight < 0:
            raise ValueError(f"Domain weight for '{key}' is negative")
        normalized[key] = float(weight)

    total = sum(normalized.values())
    if normalized and not math.isclose(total, 1.0, abs_tol=1e-6):
        raise ValueError(f"Domain weights must sum to 1.0 (got {total:.4f})")
    return normalized
