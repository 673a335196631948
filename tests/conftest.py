"""
Pytest configuration for quizstats tests.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from quizstats import MemoryScoreProvider, MemoryStatisticsCache, StatisticsCalculator


def pytest_configure(config):
    """Configure pytest with database URL if available."""
    # Try to load from .env file if environment variables not already set
    env_file = os.path.join(os.path.dirname(__file__), "..", ".env")
    if os.path.exists(env_file):
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = value


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def make_attempts(scores, quiz_id: int = 1, first_id: int = 1) -> list[dict]:
    """One finished attempt per user, one user per score."""
    return [
        {
            "id": first_id + i,
            "quiz_id": quiz_id,
            "user_id": 100 + i,
            "attempt_number": 1,
            "state": "finished",
            "sum_grades": score,
        }
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache():
    return MemoryStatisticsCache()


@pytest.fixture
def calculator_for(clock, cache):
    """Build a calculator over a list of scores for quiz 1."""

    def build(scores, **kwargs) -> StatisticsCalculator:
        provider = MemoryScoreProvider(make_attempts(scores))
        return StatisticsCalculator(provider, cache=cache, clock=clock, **kwargs)

    return build
