"""
Statistics router - overall attempt statistics for a quiz.

Endpoints:
- GET /{quiz_id}/statistics - Fresh cached statistics, computed on a miss
- GET /{quiz_id}/statistics/last-calculated - Time of the fresh cached record
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query, Response

from ...core.types import GradingPolicy
from ..dependencies import CalculatorDependency
from ..errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

PolicyQuery = Annotated[
    str,
    Query(description="Grading policy: first, highest, last, average (or its label, e.g. highestattempts)"),
]
CohortQuery = Annotated[
    list[int] | None,
    Query(description="Restrict to these user ids (repeat the parameter); omit for everyone"),
]


def parse_policy(value: str) -> GradingPolicy:
    """Accept a policy value or its label."""
    try:
        return GradingPolicy(value)
    except ValueError:
        pass
    try:
        return GradingPolicy.from_label(value)
    except ValueError:
        raise ValidationError(
            message=f"Unknown grading policy: {value}",
            detail="Use one of: " + ", ".join(policy.value for policy in GradingPolicy),
        ) from None


@router.get("/{quiz_id}/statistics", response_model=None)
def get_quiz_statistics(
    quiz_id: int,
    calculator: CalculatorDependency,
    response: Response,
    policy: PolicyQuery = GradingPolicy.highest.value,
    cohort: CohortQuery = None,
    items: Annotated[int | None, Query(ge=0, description="Number of positions (p)")] = None,
    mark_variance: Annotated[
        float | None, Query(ge=0, description="Sum of per-item mark variance")
    ] = None,
    refresh: Annotated[bool, Query(description="Ignore the cache and recompute")] = False,
) -> dict[str, Any]:
    """
    Get overall statistics for a quiz.

    Serves the cached record while it is fresh; otherwise recomputes.
    """
    grading_policy = parse_policy(policy)

    stats, cache_hit = calculator.get_or_calculate(
        quiz_id,
        grading_policy,
        cohort,
        item_count=items,
        sum_of_item_mark_variance=mark_variance,
        force_recalculate=refresh,
    )

    response.headers["X-Cache"] = "HIT" if cache_hit else "MISS"
    if stats.error_ratio_out_of_domain:
        logger.info("Quiz %d statistics have an out-of-domain error ratio", quiz_id)

    return {
        "quiz_id": quiz_id,
        "cohort": sorted(set(cohort or [])),
        "cache_hit": cache_hit,
        "statistics": stats.to_dict(),
    }


@router.get("/{quiz_id}/statistics/last-calculated", response_model=None)
def get_last_calculated(
    quiz_id: int,
    calculator: CalculatorDependency,
    policy: PolicyQuery = GradingPolicy.highest.value,
    cohort: CohortQuery = None,
) -> dict[str, Any]:
    """Time of the fresh cached statistics, or null."""
    grading_policy = parse_policy(policy)
    fingerprint = calculator.fingerprint(quiz_id, grading_policy, cohort)
    computed_at = calculator.get_last_calculated_time(fingerprint)

    return {
        "quiz_id": quiz_id,
        "grading_policy": grading_policy.label,
        "fingerprint": fingerprint,
        "computed_at": computed_at.isoformat() if computed_at else None,
    }
