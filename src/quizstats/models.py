"""
Pydantic models for quiz statistics database rows.

These models are used for:
- Validating attempt rows before they feed a score provider
- Mapping CalculatedStatistics to and from the flat quiz_statistics row
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field

from .core.types import ATTEMPT_STATE_FINISHED, GradingPolicy
from .statistics.results import AttemptTotals, CalculatedStatistics


# =============================================================================
# Attempts
# =============================================================================


class AttemptModel(BaseModel):
    """One quiz attempt (quiz_attempts row)."""

    id: int
    quiz_id: int
    user_id: int
    attempt_number: int = Field(default=1, ge=1)
    state: str = ATTEMPT_STATE_FINISHED
    is_preview: bool = False
    sum_grades: Optional[float] = Field(default=None, ge=0)
    time_finished: Optional[datetime] = None

    @computed_field
    @property
    def is_finished(self) -> bool:
        """Whether the attempt has been submitted."""
        return self.state == ATTEMPT_STATE_FINISHED


# =============================================================================
# Cached statistics
# =============================================================================

STATISTIC_COLUMNS: list[str] = [
    "median",
    "standard_deviation",
    "skewness",
    "kurtosis",
    "consistency_index",
    "error_ratio",
    "standard_error",
]


class StatisticsRecord(BaseModel):
    """
    Flat quiz_statistics row.

    One row per computation; the newest non-expired row for a fingerprint
    is authoritative.
    """

    fingerprint: str
    grading_policy: Optional[str] = None

    highestattempts_count: int = 0
    highestattempts_avg: Optional[float] = None
    allattempts_count: int = 0
    allattempts_avg: Optional[float] = None
    firstattempts_count: int = 0
    firstattempts_avg: Optional[float] = None
    lastattempts_count: int = 0
    lastattempts_avg: Optional[float] = None

    median: Optional[float] = None
    standard_deviation: Optional[float] = None
    skewness: Optional[float] = None
    kurtosis: Optional[float] = None
    consistency_index: Optional[float] = None
    error_ratio: Optional[float] = None
    standard_error: Optional[float] = None
    error_ratio_out_of_domain: bool = False

    computed_at: datetime

    @classmethod
    def columns(cls) -> list[str]:
        return list(cls.model_fields)

    @classmethod
    def from_statistics(cls, stats: CalculatedStatistics) -> "StatisticsRecord":
        if stats.fingerprint is None or stats.computed_at is None:
            raise ValueError("Statistics need a fingerprint and computed_at to be stored")

        values: dict[str, Any] = {
            "fingerprint": stats.fingerprint,
            "grading_policy": stats.grading_policy.label if stats.grading_policy else None,
            "error_ratio_out_of_domain": stats.error_ratio_out_of_domain,
            "computed_at": stats.computed_at,
        }
        for policy in GradingPolicy:
            totals = stats.totals_for(policy)
            values[f"{policy.label}_count"] = totals.count
            values[f"{policy.label}_avg"] = totals.average
        for column in STATISTIC_COLUMNS:
            values[column] = getattr(stats, column)
        return cls(**values)

    def to_statistics(self) -> CalculatedStatistics:
        totals = {
            policy: AttemptTotals(
                count=int(getattr(self, f"{policy.label}_count") or 0),
                average=getattr(self, f"{policy.label}_avg"),
            )
            for policy in GradingPolicy
        }
        return CalculatedStatistics(
            grading_policy=GradingPolicy.from_label(self.grading_policy) if self.grading_policy else None,
            totals=totals,
            fingerprint=self.fingerprint,
            computed_at=self.computed_at,
            error_ratio_out_of_domain=self.error_ratio_out_of_domain,
            **{column: getattr(self, column) for column in STATISTIC_COLUMNS},
        )
