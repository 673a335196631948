"""
Result types produced by the statistics calculator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.types import GradingPolicy


@dataclass(frozen=True)
class AttemptTotals:
    """Count and average of attempt scores under one grading policy."""

    count: int = 0
    average: Optional[float] = None


def _empty_totals() -> dict[GradingPolicy, AttemptTotals]:
    return {policy: AttemptTotals() for policy in GradingPolicy}


@dataclass
class CalculatedStatistics:
    """
    Overall attempt-score statistics for one quiz, cohort and grading policy.

    Every higher-order field is None when it is not applicable (too few
    attempts, zero variance, no item data). None never means zero.

    The fields standard_deviation, skewness, kurtosis and consistency_index
    form an implication chain: each is only set when all earlier ones are.
    """

    grading_policy: Optional[GradingPolicy] = None
    totals: dict[GradingPolicy, AttemptTotals] = field(default_factory=_empty_totals)

    median: Optional[float] = None
    standard_deviation: Optional[float] = None
    skewness: Optional[float] = None
    kurtosis: Optional[float] = None
    consistency_index: Optional[float] = None
    error_ratio: Optional[float] = None
    standard_error: Optional[float] = None

    # Set when consistency_index > 100 so error_ratio would need sqrt(< 0)
    error_ratio_out_of_domain: bool = False

    fingerprint: Optional[str] = None
    computed_at: Optional[datetime] = None

    def totals_for(self, policy: GradingPolicy) -> AttemptTotals:
        return self.totals.get(policy, AttemptTotals())

    @property
    def sample_count(self) -> int:
        """Number of scores under the requested grading policy (s)."""
        if self.grading_policy is None:
            return 0
        return self.totals_for(self.grading_policy).count

    @property
    def average(self) -> Optional[float]:
        """Average score under the requested grading policy."""
        if self.grading_policy is None:
            return None
        return self.totals_for(self.grading_policy).average

    def to_dict(self) -> dict:
        """JSON-friendly representation keyed by grading policy label."""
        return {
            "grading_policy": self.grading_policy.label if self.grading_policy else None,
            "sample_count": self.sample_count,
            "average": self.average,
            "totals": {
                policy.label: {"count": totals.count, "average": totals.average}
                for policy, totals in self.totals.items()
            },
            "median": self.median,
            "standard_deviation": self.standard_deviation,
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
            "consistency_index": self.consistency_index,
            "error_ratio": self.error_ratio,
            "standard_error": self.standard_error,
            "error_ratio_out_of_domain": self.error_ratio_out_of_domain,
            "fingerprint": self.fingerprint,
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
        }
