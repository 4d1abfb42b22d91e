"""
Selection Engine for study sessions.

Builds the ordered question list for a new session. Every function is a
pure function of the catalog, the learner's aggregates and the request:

- select_random: uniform sample from one domain (or all)
- select_fixed_set: review sets (incorrect / bookmarked), catalog order
- select_exam_set: domain-weighted exam with top-up and final shuffle
- select_adaptive: deterministic top-K by historical weakness

Random draws use a ``random.Random`` instance. Pass a seeded one for
reproducible tests; by default a module-level unseeded source is used.
``Random.sample`` draws without replacement and ``Random.shuffle`` is a
Fisher-Yates shuffle, so every ordering is equally likely.
"""

from __future__ import annotations

import random
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from loguru import logger

from certprep.core.domains import is_all_domains, normalize_domain
from certprep.core.models import DomainTally, Question, QuestionStat, round_half_up

_default_rng = random.Random()

# Adaptive weighting offsets: weak history raises the weight, strong
# history never drives it to zero
DOMAIN_WEIGHT_OFFSET = 0.5
QUESTION_WEIGHT_OFFSET = 0.3


@dataclass
class ExamSelection:
    """Questions chosen for a mock exam plus under-fill signalling."""

    questions: list[Question]
    requested_count: int
    weighted_counts: dict[str, int] = field(default_factory=dict)
    topped_up: int = 0

    @property
    def is_partial(self) -> bool:
        """The catalog could not supply the requested exam length."""
        return len(self.questions) < self.requested_count

    @property
    def shortfall(self) -> int:
        return max(0, self.requested_count - len(self.questions))

    @property
    def weighted_total(self) -> int:
        """Questions drawn by domain weight, before top-up."""
        return sum(self.weighted_counts.values())


def filter_by_domain(catalog: Iterable[Question], domain_filter: str | None) -> list[Question]:
    """Questions in ``domain_filter`` (``"all"`` keeps everything)."""
    if is_all_domains(domain_filter):
        return list(catalog)
    wanted = normalize_domain(domain_filter)
    return [q for q in catalog if q.domain == wanted]


def select_random(
    catalog: Sequence[Question],
    domain_filter: str | None,
    count: int,
    rng: random.Random | None = None,
) -> list[Question]:
    """
    Uniformly sample ``count`` questions without replacement.

    Args:
        catalog: Full question catalog
        domain_filter: Domain label or "all"
        count: Questions wanted; more than the pool returns the whole pool
        rng: Random source

    Returns:
        Questions in random order; empty when nothing matches the filter
    """
    rng = rng or _default_rng
    pool = filter_by_domain(catalog, domain_filter)
    take = max(0, min(count, len(pool)))
    selected = rng.sample(pool, take)

    logger.debug(f"Random selection: {len(selected)}/{count} from pool of {len(pool)}")
    return selected


def select_fixed_set(id_set: Collection[int], catalog: Iterable[Question]) -> list[Question]:
    """Catalog questions whose id is in ``id_set``, in catalog order."""
    if not id_set:
        return []
    ids = set(id_set)
    return [q for q in catalog if q.id in ids]


def select_exam_set(
    catalog: Sequence[Question],
    total_count: int,
    domain_weights: Mapping[str, float],
    rng: random.Random | None = None,
) -> ExamSelection:
    """
    Compose a domain-weighted exam.

    The algorithm:
    1. For each domain in the weight table draw round(total * weight)
       questions uniformly from that domain
    2. Top up from the rest of the catalog if the draw fell short
    3. Truncate to ``total_count`` and shuffle, so per-domain blocks
       do not leak into presentation order

    A catalog smaller than ``total_count`` yields a partial exam, flagged
    on the returned ExamSelection rather than raised.
    """
    rng = rng or _default_rng

    by_domain: dict[str, list[Question]] = {}
    for question in catalog:
        by_domain.setdefault(question.domain, []).append(question)

    selected: list[Question] = []
    selected_ids: set[int] = set()
    weighted_counts: dict[str, int] = {}

    for domain, weight in domain_weights.items():
        label = normalize_domain(domain)
        # Weight keys that normalize to the same label share one pool
        pool = [q for q in by_domain.get(label, []) if q.id not in selected_ids]
        quota = round_half_up(total_count * weight)
        drawn = rng.sample(pool, min(quota, len(pool)))
        weighted_counts[label] = weighted_counts.get(label, 0) + len(drawn)
        selected.extend(drawn)
        selected_ids.update(q.id for q in drawn)

        if len(drawn) < quota:
            logger.debug(f"Domain '{label}' supplied {len(drawn)} of {quota} weighted questions")

    topped_up = 0
    needed = total_count - len(selected)
    if needed > 0:
        remaining = [q for q in catalog if q.id not in selected_ids]
        extra = rng.sample(remaining, min(needed, len(remaining)))
        topped_up = len(extra)
        selected.extend(extra)

    selected = selected[:total_count]
    rng.shuffle(selected)

    selection = ExamSelection(
        questions=selected,
        requested_count=total_count,
        weighted_counts=weighted_counts,
        topped_up=topped_up,
    )

    if selection.is_partial:
        logger.warning(
            f"Not enough questions for a full {total_count}-question exam; "
            f"the exam will have {len(selected)} questions"
        )
    else:
        logger.info(
            f"Built exam: {selection.weighted_total} weighted + {topped_up} top-up "
            f"= {len(selected)} questions"
        )

    return selection


def adaptive_weight(domain_accuracy: float | None, question_accuracy: float | None) -> float:
    """
    Priority of a question for adaptive practice.

    Missing history counts as accuracy 1.0, so unseen material sits at the
    baseline and questions from weak domains or with a weak record rank
    above it.
    """
    d_acc = 1.0 if domain_accuracy is None else domain_accuracy
    q_acc = 1.0 if question_accuracy is None else question_accuracy
    return (1 - d_acc + DOMAIN_WEIGHT_OFFSET) * (1 - q_acc + QUESTION_WEIGHT_OFFSET)


def select_adaptive(
    catalog: Sequence[Question],
    domain_filter: str | None,
    count: int,
    domain_stats: Mapping[str, DomainTally],
    question_stats: Mapping[int, QuestionStat],
) -> list[Question]:
    """
    Rank questions by adaptive weight and take the top ``count``.

    This is deterministic rank selection, not weighted sampling: the sort
    is stable, so equal weights keep catalog order, and the same ranking
    recurs until the learner's accuracy changes.
    """
    pool = filter_by_domain(catalog, domain_filter)

    def weight(question: Question) -> float:
        tally = domain_stats.get(question.domain)
        stat = question_stats.get(question.id)
        return adaptive_weight(
            tally.accuracy if tally else None,
            stat.accuracy if stat else None,
        )

    ranked = sorted(pool, key=weight, reverse=True)
    selected = ranked[: max(0, count)]

    logger.debug(
        f"Adaptive selection: {len(selected)}/{count} from pool of {len(pool)}"
    )
    return selected
