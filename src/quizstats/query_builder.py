"""
SQL query builder for quiz attempt selection.

Builds the FROM/WHERE fragments that select the attempts belonging to a
quiz + cohort + grading policy, and derives the fingerprint used as the
statistics cache key.

All fragments use PostgreSQL %s placeholders; params are positional and
returned in placeholder order.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .core.types import ATTEMPT_STATE_FINISHED, ATTEMPTS_TABLE, GradingPolicy

ATTEMPT_ALIAS = "quiza"


def normalize_cohort(cohort: Optional[Iterable[int]]) -> tuple[int, ...]:
    """Sorted, de-duplicated user ids. Empty means all participants."""
    if not cohort:
        return ()
    return tuple(sorted({int(user_id) for user_id in cohort}))


@dataclass(frozen=True)
class AttemptsQuery:
    """FROM and WHERE fragments plus their params."""

    from_sql: str
    where_sql: str
    params: tuple[Any, ...]

    @property
    def fingerprint(self) -> str:
        """
        Stable hash of the exact attempt selection.

        Identical quiz, cohort and grading policy always give the same value.
        """
        key_str = "|".join(
            [self.from_sql, self.where_sql, json.dumps(list(self.params), default=str)]
        )
        return hashlib.sha1(key_str.encode()).hexdigest()


class AttemptsQueryBuilder:
    """Build attempt-selection SQL for statistics queries."""

    @staticmethod
    def grade_method_sql(policy: GradingPolicy, alias: str = ATTEMPT_ALIAS) -> str:
        """
        SQL condition keeping only the attempts that count under a policy.

        Other attempts are compared within the same quiz and user, among
        finished attempts only.

        Args:
            policy: Grading policy
            alias: Table alias of the outer attempts query

        Returns:
            SQL condition, or an empty string when every attempt counts
        """
        policy = GradingPolicy(policy)
        if policy == GradingPolicy.average:
            return ""

        if policy == GradingPolicy.highest:
            better = (
                f"COALESCE(qa2.sum_grades, 0) > COALESCE({alias}.sum_grades, 0) OR "
                f"(COALESCE(qa2.sum_grades, 0) = COALESCE({alias}.sum_grades, 0) "
                f"AND qa2.attempt_number < {alias}.attempt_number)"
            )
        elif policy == GradingPolicy.first:
            better = f"qa2.attempt_number < {alias}.attempt_number"
        else:
            better = f"qa2.attempt_number > {alias}.attempt_number"

        return (
            f"NOT EXISTS (SELECT 1 FROM {ATTEMPTS_TABLE} qa2 "
            f"WHERE qa2.quiz_id = {alias}.quiz_id "
            f"AND qa2.user_id = {alias}.user_id "
            f"AND qa2.state = '{ATTEMPT_STATE_FINISHED}' "
            f"AND ({better}))"
        )

    @classmethod
    def build(
        cls,
        quiz_id: int,
        cohort: Optional[Iterable[int]] = None,
        policy: GradingPolicy = GradingPolicy.average,
        include_ungraded: bool = False,
    ) -> AttemptsQuery:
        """
        Build the attempt selection for a quiz.

        Args:
            quiz_id: Quiz identifier
            cohort: User ids to restrict to; empty or None for everyone
            policy: Which attempts count towards grade
            include_ungraded: Also select attempts without a total score

        Returns:
            AttemptsQuery with FROM, WHERE and params

        Example:
            >>> query = AttemptsQueryBuilder.build(7, [3, 1], GradingPolicy.first)
            >>> query.params
            (7, 'finished', 1, 3)
        """
        from_sql = f"{ATTEMPTS_TABLE} {ATTEMPT_ALIAS}"

        conditions = [
            f"{ATTEMPT_ALIAS}.quiz_id = %s",
            f"{ATTEMPT_ALIAS}.is_preview = FALSE",
            f"{ATTEMPT_ALIAS}.state = %s",
        ]
        params: list[Any] = [int(quiz_id), ATTEMPT_STATE_FINISHED]

        users = normalize_cohort(cohort)
        if users:
            placeholders = ", ".join("%s" for _ in users)
            conditions.append(f"{ATTEMPT_ALIAS}.user_id IN ({placeholders})")
            params.extend(users)

        grade_sql = cls.grade_method_sql(policy)
        if grade_sql:
            conditions.append(grade_sql)

        if not include_ungraded:
            conditions.append(f"{ATTEMPT_ALIAS}.sum_grades IS NOT NULL")

        return AttemptsQuery(
            from_sql=from_sql,
            where_sql=" AND ".join(conditions),
            params=tuple(params),
        )
