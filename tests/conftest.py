"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from certprep.core.models import Question  # noqa: E402
from certprep.delivery.state_store import MemoryBackend, PerformanceStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (real storage backends)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def setup_logging():
    """Route loguru to stderr at DEBUG for the duration of a test."""
    from loguru import logger

    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG",
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )

    yield

    logger.remove()


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_question(
    qid: int,
    domain: str = "General",
    correct: int = 0,
    options: tuple = ("Option A", "Option B", "Option C", "Option D"),
    difficulty: int = 3,
) -> Question:
    """Build a catalog question with sensible defaults."""
    return Question(
        id=qid,
        text=f"Question {qid}?",
        options=options,
        correct_option_index=correct,
        domain=domain,
        explanation=f"Explanation {qid}",
        difficulty=difficulty,
    )


@pytest.fixture
def question_factory():
    return make_question


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    """Seeded random source for reproducible draws."""
    return random.Random(1234)


@pytest.fixture
def general_catalog():
    """Four 'General' questions; correct answers are 0, 1, 2, 3."""
    return [make_question(i, correct=i - 1) for i in range(1, 5)]


@pytest.fixture
def memory_store():
    store = PerformanceStore(MemoryBackend())
    store.load()
    return store


@pytest.fixture
def sample_raw_record():
    """A raw record as exported from the question spreadsheet."""
    return {
        "id": 17,
        "Question": "Which of the following is the PRIMARY purpose of an IT audit charter?",
        "OptionA": "Define audit scope and authority",
        "OptionB": "List audit findings",
        "OptionC": "Assign remediation owners",
        "OptionD": "Schedule audit fieldwork",
        "CorrectAnswer": " a ",
        "Domain": "information system auditing   process",
        "Explanation": "The charter establishes responsibility, authority and accountability.",
        "Difficulty": "4",
    }
