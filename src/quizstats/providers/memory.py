"""
In-memory score provider - database agnostic.

Applies the same attempt selection rules as the SQL built by
AttemptsQueryBuilder, in Python, over a list of attempt records:
- finished, non-preview attempts of the quiz
- optionally restricted to a cohort of users
- filtered per user by the grading policy
- graded attempts only (sum_grades not null)
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np

from ..core.types import GradingPolicy
from ..models import AttemptModel
from ..query_builder import normalize_cohort
from ..statistics.results import AttemptTotals
from .base import PowerSums, RankedScore, ScoreProvider

logger = logging.getLogger(__name__)


def _grade(attempt: AttemptModel) -> float:
    return attempt.sum_grades or 0.0


def _is_beaten(attempt: AttemptModel, other: AttemptModel, policy: GradingPolicy) -> bool:
    """Whether another attempt of the same user displaces this one under a policy."""
    if policy == GradingPolicy.highest:
        return _grade(other) > _grade(attempt) or (
            _grade(other) == _grade(attempt) and other.attempt_number < attempt.attempt_number
        )
    if policy == GradingPolicy.first:
        return other.attempt_number < attempt.attempt_number
    if policy == GradingPolicy.last:
        return other.attempt_number > attempt.attempt_number
    return False


class MemoryScoreProvider(ScoreProvider):
    """Score provider over attempt records held in memory."""

    def __init__(self, attempts: Optional[Iterable[AttemptModel | dict]] = None):
        """
        Initialize the provider.

        Args:
            attempts: AttemptModel instances or dicts with the same fields
        """
        self._attempts: list[AttemptModel] = []
        for attempt in attempts or []:
            self.add(attempt)

    def add(self, attempt: AttemptModel | dict) -> AttemptModel:
        """Add one attempt record."""
        if not isinstance(attempt, AttemptModel):
            attempt = AttemptModel.model_validate(attempt)
        self._attempts.append(attempt)
        return attempt

    def __len__(self) -> int:
        return len(self._attempts)

    # =========================================================================
    # Selection
    # =========================================================================

    def select(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        include_ungraded: bool = False,
    ) -> list[AttemptModel]:
        """Attempts counted for a quiz, cohort and grading policy."""
        policy = GradingPolicy(policy)
        users = set(normalize_cohort(cohort))

        # Comparison pool for the grading policy: every finished attempt of the quiz
        finished_by_user: dict[int, list[AttemptModel]] = {}
        for attempt in self._attempts:
            if attempt.quiz_id == quiz_id and attempt.is_finished:
                finished_by_user.setdefault(attempt.user_id, []).append(attempt)

        selected = []
        for attempt in self._attempts:
            if attempt.quiz_id != quiz_id or attempt.is_preview or not attempt.is_finished:
                continue
            if users and attempt.user_id not in users:
                continue
            if not include_ungraded and attempt.sum_grades is None:
                continue
            others = finished_by_user.get(attempt.user_id, [])
            if any(_is_beaten(attempt, other, policy) for other in others if other is not attempt):
                continue
            selected.append(attempt)

        return selected

    def _scores(self, quiz_id: int, cohort: Iterable[int], policy: GradingPolicy) -> np.ndarray:
        attempts = self.select(quiz_id, cohort, policy)
        return np.array([attempt.sum_grades for attempt in attempts], dtype=float)

    # =========================================================================
    # ScoreProvider
    # =========================================================================

    def count_and_average(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
    ) -> AttemptTotals:
        scores = self._scores(quiz_id, cohort, policy)
        if scores.size == 0:
            return AttemptTotals(count=0, average=None)
        return AttemptTotals(count=int(scores.size), average=float(np.mean(scores)))

    def ordered_scores(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[RankedScore]:
        attempts = sorted(
            self.select(quiz_id, cohort, policy),
            key=lambda attempt: (attempt.sum_grades, attempt.id),
        )
        end = None if limit is None else offset + limit
        return [
            RankedScore(score=float(attempt.sum_grades), tiebreak=attempt.id)
            for attempt in attempts[offset:end]
        ]

    def central_moments(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        mean: float,
    ) -> PowerSums:
        deviations = self._scores(quiz_id, cohort, policy) - mean
        return PowerSums(
            power2=float(np.sum(deviations**2)),
            power3=float(np.sum(deviations**3)),
            power4=float(np.sum(deviations**4)),
        )
