"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import date
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from timora.planner import PlanRequest, RuleSet  # noqa: E402
from timora.study import SessionComplete, TimerMode  # noqa: E402
from timora.sync import InMemoryProgressStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def rules():
    """Default scheduling rules."""
    return RuleSet()


@pytest.fixture
def exam_request():
    """The two-subject, three-hour example request."""
    return PlanRequest(subjects=("Math", "Physics"), hours_per_day=3, days=1, goal="exam")


@pytest.fixture
def memory_store():
    return InMemoryProgressStore()


@pytest.fixture
def today():
    return date(2026, 10, 19)


@pytest.fixture
def focus_event():
    """Factory for completed focus sessions."""

    def _make(event_id: str = "evt-1", minutes: int = 25, sessions: int = 0) -> SessionComplete:
        return SessionComplete(
            mode=TimerMode.FOCUS,
            sessions_completed=sessions,
            duration_minutes=minutes,
            event_id=event_id,
        )

    return _make
