"""
Base score provider protocol.

A score provider answers aggregate questions about the finished, non-preview,
graded attempts of a quiz, restricted to a cohort and a grading policy.
Implementations decide where the attempts live (PostgreSQL, memory).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..core.types import GradingPolicy
from ..query_builder import AttemptsQueryBuilder
from ..statistics.results import AttemptTotals


@dataclass(frozen=True)
class RankedScore:
    """One attempt score with the key used to break ties when ranking."""

    score: float
    tiebreak: Any


@dataclass(frozen=True)
class PowerSums:
    """Sums of the 2nd, 3rd and 4th powers of deviations from a mean."""

    power2: float
    power3: float
    power4: float


class ScoreProvider(ABC):
    """
    Abstract interface for attempt-score access.

    All methods take the same (quiz_id, cohort, policy) triple selecting an
    attempt score set. An empty cohort means all participants.
    """

    @abstractmethod
    def count_and_average(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
    ) -> AttemptTotals:
        """
        Count and average of the selected attempt scores.

        Returns:
            AttemptTotals; average is None when count is 0
        """
        ...

    @abstractmethod
    def ordered_scores(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[RankedScore]:
        """
        Selected scores ascending by (score, attempt id).

        Args:
            offset: Number of ranked scores to skip
            limit: Maximum number of scores to return (None for all)
        """
        ...

    @abstractmethod
    def central_moments(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        mean: float,
    ) -> PowerSums:
        """Sums of powers of (score - mean) over the selected scores."""
        ...

    def fingerprint(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
    ) -> str:
        """
        Stable hash of the attempt selection, used as the cache key.

        Shared by every provider so the key does not depend on the backend.
        """
        return AttemptsQueryBuilder.build(quiz_id, cohort, policy).fingerprint
