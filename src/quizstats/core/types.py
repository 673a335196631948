"""
Core types and constants for quiz statistics.

This module provides:
- GradingPolicy enum (which attempts count towards a participant's grade)
- Table names shared by the providers, the cache and the schema
- Time-to-cache default for computed statistics
"""

from enum import Enum


class GradingPolicy(str, Enum):
    """
    Which attempt(s) of each participant are included in a score set.

    Member order follows the quiz grading options: highest, average,
    first, last.
    """

    highest = "highest"
    average = "average"
    first = "first"
    last = "last"

    @property
    def label(self) -> str:
        """String key used for display and as the column prefix."""
        return GRADING_POLICY_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "GradingPolicy":
        """Reverse of :attr:`label`."""
        for policy, policy_label in GRADING_POLICY_LABELS.items():
            if policy_label == label:
                return policy
        raise ValueError(f"Unknown grading policy label: {label!r}")


GRADING_POLICY_LABELS: dict[GradingPolicy, str] = {
    GradingPolicy.first: "firstattempts",
    GradingPolicy.highest: "highestattempts",
    GradingPolicy.last: "lastattempts",
    GradingPolicy.average: "allattempts",
}


def grading_policy_label(policy: GradingPolicy) -> str:
    """Return the string key for a grading policy."""
    return GRADING_POLICY_LABELS[GradingPolicy(policy)]


# =============================================================================
# Tables
# =============================================================================

ATTEMPTS_TABLE = "quiz_attempts"
STATISTICS_TABLE = "quiz_statistics"

# Attempt state that makes an attempt eligible for statistics
ATTEMPT_STATE_FINISHED = "finished"

# Seconds after which cached statistics are recomputed (15 minutes)
TIME_TO_CACHE = 900
