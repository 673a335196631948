"""
Core module for quizstats.

Provides settings and the shared types/constants.
"""

from .config import Settings, get_settings
from .types import (
    ATTEMPT_STATE_FINISHED,
    ATTEMPTS_TABLE,
    GRADING_POLICY_LABELS,
    STATISTICS_TABLE,
    TIME_TO_CACHE,
    GradingPolicy,
    grading_policy_label,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "GradingPolicy",
    "GRADING_POLICY_LABELS",
    "grading_policy_label",
    "ATTEMPTS_TABLE",
    "STATISTICS_TABLE",
    "ATTEMPT_STATE_FINISHED",
    "TIME_TO_CACHE",
]
