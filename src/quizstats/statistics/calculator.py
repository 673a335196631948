"""
Overall attempt-score statistics for a quiz.

Computes counts and averages for every grading policy, then the median,
standard deviation, skewness, kurtosis, consistency index, error ratio and
standard error of the scores under the requested policy, and manages a
time-expiring cache of the results.

Methodology:
- Median: middle ranked score (mean of the two middle scores for even counts),
  ties ranked by attempt id
- Skewness/kurtosis: bias-corrected cumulants k2, k3, k4
- Consistency index: 100 * p/(p-1) * (1 - sum of item mark variance / k2)

Each step needs more data than the one before; the calculation stops at the
first step whose preconditions fail and leaves the remaining fields None.
"""

from __future__ import annotations

import logging
import math
import sys
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from ..core.types import TIME_TO_CACHE, GradingPolicy, grading_policy_label
from ..query_builder import normalize_cohort
from .progress import NullProgress, ProgressReporter
from .results import CalculatedStatistics

if TYPE_CHECKING:
    from ..cache import StatisticsCache
    from ..providers.base import ScoreProvider

logger = logging.getLogger(__name__)

PROGRESS_STAGES = 3


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _is_zero_variance(k2: float, mean: float, s: int) -> bool:
    """
    Whether k2 is rounding noise rather than spread.

    Identical scores can still leave residual deviations when the mean is
    not exactly representable.
    """
    return k2 <= sys.float_info.epsilon * max(1.0, mean * mean) * s


class StatisticsCalculator:
    """
    Calculates and caches overall quiz statistics.

    The calculator holds no per-calculation state; concurrent calculations
    for the same fingerprint produce equal records and the last store wins.
    """

    def __init__(
        self,
        provider: "ScoreProvider",
        cache: Optional["StatisticsCache"] = None,
        progress: Optional[ProgressReporter] = None,
        time_to_cache: int = TIME_TO_CACHE,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the calculator.

        Args:
            provider: Source of attempt-score aggregates
            cache: Statistics store (defaults to an in-memory cache)
            progress: Observer for the three calculation stages
            time_to_cache: Seconds a computed record stays fresh
            clock: Returns the current timezone-aware time
        """
        if cache is None:
            from ..cache import MemoryStatisticsCache

            cache = MemoryStatisticsCache()

        self.provider = provider
        self.cache = cache
        self.progress = progress or NullProgress()
        self.time_to_cache = time_to_cache
        self.clock = clock

    # =========================================================================
    # Calculation
    # =========================================================================

    def calculate(
        self,
        quiz_id: int,
        grading_policy: GradingPolicy,
        cohort: Optional[Iterable[int]] = None,
        item_count: Optional[int] = None,
        sum_of_item_mark_variance: Optional[float] = None,
    ) -> CalculatedStatistics:
        """
        Compute the statistics and store them in the cache.

        Args:
            quiz_id: Quiz identifier
            grading_policy: Which attempts per participant count
            cohort: User ids to restrict to; empty for all participants
            item_count: Number of positions (p); consistency index needs p > 1
            sum_of_item_mark_variance: Sum of per-item mark variances

        Returns:
            CalculatedStatistics; sets with no attempts are not cached
        """
        policy = GradingPolicy(grading_policy)
        users = normalize_cohort(cohort)

        self.progress.start(PROGRESS_STAGES)

        stats = CalculatedStatistics(grading_policy=policy)
        stats.fingerprint = self.provider.fingerprint(quiz_id, users, policy)

        stats.totals = {
            which: self.provider.count_and_average(quiz_id, users, which)
            for which in GradingPolicy
        }
        self.progress.progress(1)

        s = stats.sample_count
        logger.debug("Quiz %s (%s): %d attempts in cohort", quiz_id, policy.label, s)

        if s == 0:
            stats.computed_at = self.clock()
            self.progress.end()
            return stats

        stats.median = self._median(quiz_id, users, policy, s)
        self.progress.progress(2)

        if s > 1:
            mean = stats.average
            powers = self.provider.central_moments(quiz_id, users, policy, mean)
            self.progress.progress(3)

            k2 = powers.power2 / (s - 1)
            if _is_zero_variance(k2, mean, s):
                stats.standard_deviation = 0.0
            else:
                stats.standard_deviation = math.sqrt(k2)

                if s > 2:
                    m2 = powers.power2 / s
                    m3 = powers.power3 / s
                    m4 = powers.power4 / s

                    k3 = s * s * m3 / ((s - 1) * (s - 2))
                    stats.skewness = k3 / k2**1.5

                    if s > 3:
                        k4 = s * s * ((s + 1) * m4 - 3 * (s - 1) * m2 * m2) / (
                            (s - 1) * (s - 2) * (s - 3)
                        )
                        stats.kurtosis = k4 / (k2 * k2)
                        self._reliability(stats, item_count, sum_of_item_mark_variance, k2)

        stats.computed_at = self.clock()
        self.cache.store(stats)
        self.progress.end()
        return stats

    def _median(self, quiz_id: int, cohort: tuple[int, ...], policy: GradingPolicy, s: int) -> float:
        if s % 2 == 0:
            offset, limit = s // 2 - 1, 2
        else:
            offset, limit = s // 2, 1

        middle = self.provider.ordered_scores(quiz_id, cohort, policy, offset=offset, limit=limit)
        return sum(ranked.score for ranked in middle) / len(middle)

    def _reliability(
        self,
        stats: CalculatedStatistics,
        item_count: Optional[int],
        sum_of_item_mark_variance: Optional[float],
        k2: float,
    ) -> None:
        """Set the consistency index, error ratio and standard error for p items."""
        stats.consistency_index = None
        stats.error_ratio = None
        stats.standard_error = None
        stats.error_ratio_out_of_domain = False

        if item_count is None or item_count <= 1 or sum_of_item_mark_variance is None:
            return

        p = item_count
        stats.consistency_index = (100 * p / (p - 1)) * (1 - sum_of_item_mark_variance / k2)

        if stats.consistency_index > 100:
            stats.error_ratio_out_of_domain = True
            logger.warning(
                "Consistency index %.4f exceeds 100 for %s; error ratio and standard error left undefined",
                stats.consistency_index,
                stats.fingerprint,
            )
            return

        stats.error_ratio = 100 * math.sqrt(1 - stats.consistency_index / 100)
        stats.standard_error = stats.error_ratio * stats.standard_deviation / 100

    # =========================================================================
    # Cache
    # =========================================================================

    def _fresh_since(self) -> datetime:
        return self.clock() - timedelta(seconds=self.time_to_cache)

    def get_cached(self, fingerprint: str) -> Optional[CalculatedStatistics]:
        """
        Load non-expired statistics for a fingerprint.

        Returns:
            CalculatedStatistics, or None if never computed or expired
        """
        return self.cache.get(fingerprint, self._fresh_since())

    def get_last_calculated_time(self, fingerprint: str) -> Optional[datetime]:
        """Time of the non-expired cached record for a fingerprint, or None."""
        return self.cache.get_computed_at(fingerprint, self._fresh_since())

    def fingerprint(
        self,
        quiz_id: int,
        grading_policy: GradingPolicy,
        cohort: Optional[Iterable[int]] = None,
    ) -> str:
        return self.provider.fingerprint(quiz_id, normalize_cohort(cohort), GradingPolicy(grading_policy))

    def get_or_calculate(
        self,
        quiz_id: int,
        grading_policy: GradingPolicy,
        cohort: Optional[Iterable[int]] = None,
        item_count: Optional[int] = None,
        sum_of_item_mark_variance: Optional[float] = None,
        force_recalculate: bool = False,
    ) -> tuple[CalculatedStatistics, bool]:
        """
        Return fresh cached statistics, calculating them on a miss.

        On a hit the consistency index, error ratio and standard error are
        recomputed for the requested item_count and sum_of_item_mark_variance.

        Returns:
            (statistics, cache_hit)
        """
        if not force_recalculate:
            cached = self.get_cached(self.fingerprint(quiz_id, grading_policy, cohort))
            if cached is not None:
                # Item inputs are not part of the fingerprint
                if cached.kurtosis is not None:
                    self._reliability(
                        cached, item_count, sum_of_item_mark_variance, cached.standard_deviation**2
                    )
                return cached, True

        stats = self.calculate(
            quiz_id,
            grading_policy,
            cohort,
            item_count=item_count,
            sum_of_item_mark_variance=sum_of_item_mark_variance,
        )
        return stats, False

    @staticmethod
    def using_attempts_label(grading_policy: GradingPolicy) -> str:
        """Label describing which attempts the statistics were computed from."""
        return grading_policy_label(grading_policy)
