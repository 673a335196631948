"""
PostgreSQL score provider.

Runs the count/average, median and power-sum aggregates directly in SQL over
the quiz_attempts table, using the selection built by AttemptsQueryBuilder.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from ..core.types import GradingPolicy
from ..query_builder import ATTEMPT_ALIAS, AttemptsQueryBuilder
from ..statistics.results import AttemptTotals
from .base import PowerSums, RankedScore, ScoreProvider

if TYPE_CHECKING:
    from ..pg_connection import PostgresDB

logger = logging.getLogger(__name__)


class PostgresScoreProvider(ScoreProvider):
    """Score provider backed by the quiz_attempts table."""

    def __init__(self, db: "PostgresDB"):
        """
        Initialize the provider.

        Args:
            db: PostgreSQL database connection (fetchone/fetchall)
        """
        self.db = db

    def count_and_average(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
    ) -> AttemptTotals:
        query = AttemptsQueryBuilder.build(quiz_id, cohort, policy)
        row = self.db.fetchone(
            f"""
            SELECT COUNT(*) AS rcount, AVG({ATTEMPT_ALIAS}.sum_grades) AS average
            FROM {query.from_sql}
            WHERE {query.where_sql}
            """,
            query.params,
        )
        if not row:
            return AttemptTotals()

        count = int(row["rcount"] or 0)
        average = float(row["average"]) if row["average"] is not None else None
        return AttemptTotals(count=count, average=average)

    def ordered_scores(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[RankedScore]:
        query = AttemptsQueryBuilder.build(quiz_id, cohort, policy)
        sql = f"""
            SELECT {ATTEMPT_ALIAS}.id, {ATTEMPT_ALIAS}.sum_grades
            FROM {query.from_sql}
            WHERE {query.where_sql}
            ORDER BY {ATTEMPT_ALIAS}.sum_grades, {ATTEMPT_ALIAS}.id
        """
        params = list(query.params)
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))
        if offset:
            sql += " OFFSET %s"
            params.append(int(offset))

        rows = self.db.fetchall(sql, tuple(params))
        return [RankedScore(score=float(row["sum_grades"]), tiebreak=row["id"]) for row in rows]

    def central_moments(
        self,
        quiz_id: int,
        cohort: Iterable[int],
        policy: GradingPolicy,
        mean: float,
    ) -> PowerSums:
        query = AttemptsQueryBuilder.build(quiz_id, cohort, policy)
        row = self.db.fetchone(
            f"""
            SELECT
                SUM(POWER({ATTEMPT_ALIAS}.sum_grades - %s, 2)) AS power2,
                SUM(POWER({ATTEMPT_ALIAS}.sum_grades - %s, 3)) AS power3,
                SUM(POWER({ATTEMPT_ALIAS}.sum_grades - %s, 4)) AS power4
            FROM {query.from_sql}
            WHERE {query.where_sql}
            """,
            (mean, mean, mean) + query.params,
        )
        if row is None:
            raise RuntimeError(f"Power sums query returned no row for quiz {quiz_id}")

        return PowerSums(
            power2=float(row["power2"] or 0.0),
            power3=float(row["power3"] or 0.0),
            power4=float(row["power4"] or 0.0),
        )
