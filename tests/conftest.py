"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest
from loguru import logger

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from learner_engine.core.models import (  # noqa: E402
    Attempt,
    ItemParameters,
    Question,
    QuestionType,
    StudentState,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "simulation: Simulated student sessions")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)
        elif "simulation" in str(item.fspath):
            item.add_marker(pytest.mark.simulation)


@pytest.fixture(autouse=True)
def quiet_logs():
    """Keep loguru output out of test runs."""
    logger.remove()
    yield


@pytest.fixture
def now():
    """A fixed review timestamp."""
    return datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def new_student():
    """A student with no history."""
    return StudentState()


@pytest.fixture
def sample_bank():
    """Provide a small question bank over two topics."""
    return [
        Question(id="frac-easy", topic_id="fractions", item=ItemParameters(difficulty=-1.5)),
        Question(id="frac-mid", topic_id="fractions", item=ItemParameters(difficulty=0.0)),
        Question(id="frac-hard", topic_id="fractions", item=ItemParameters(difficulty=1.5)),
        Question(
            id="eq-mid",
            topic_id="equations",
            item=ItemParameters(difficulty=0.2, discrimination=1.4),
            question_type=QuestionType.NUMERIC,
            prerequisites=("fractions",),
        ),
        Question(
            id="eq-hard",
            topic_id="equations",
            item=ItemParameters(difficulty=1.8, discrimination=1.2),
            question_type=QuestionType.NUMERIC,
            prerequisites=("fractions",),
        ),
    ]


@pytest.fixture
def correct_attempt(now):
    """A plain correct answer with no timing signal."""
    return Attempt(is_correct=True, timestamp=now)


@pytest.fixture
def incorrect_attempt(now):
    """A plain incorrect answer with no timing signal."""
    return Attempt(is_correct=False, timestamp=now)
