"""
Tests for attempt selection in MemoryScoreProvider.
"""

import pytest

from quizstats import AttemptModel, GradingPolicy, MemoryScoreProvider


@pytest.fixture
def provider():
    """
    Quiz 5 attempts:
    - user 1: 5, 8, 6 (three attempts)
    - user 2: 7, 7 (tie on highest, first attempt wins)
    - user 3: preview only
    - user 4: still in progress
    - user 6: ungraded finished attempt
    Plus one attempt on another quiz.
    """
    rows = [
        (1, 1, 1, "finished", False, 5.0),
        (2, 1, 2, "finished", False, 8.0),
        (3, 1, 3, "finished", False, 6.0),
        (4, 2, 1, "finished", False, 7.0),
        (5, 2, 2, "finished", False, 7.0),
        (6, 3, 1, "finished", True, 10.0),
        (7, 4, 1, "inprogress", False, None),
        (8, 6, 1, "finished", False, None),
    ]
    attempts = [
        AttemptModel(
            id=attempt_id,
            quiz_id=5,
            user_id=user_id,
            attempt_number=number,
            state=state,
            is_preview=preview,
            sum_grades=grade,
        )
        for attempt_id, user_id, number, state, preview, grade in rows
    ]
    attempts.append(AttemptModel(id=9, quiz_id=6, user_id=1, sum_grades=1.0))
    return MemoryScoreProvider(attempts)


class TestSelection:
    @pytest.mark.parametrize(
        "policy,expected_ids",
        [
            (GradingPolicy.first, [1, 4]),
            (GradingPolicy.last, [3, 5]),
            (GradingPolicy.highest, [2, 4]),
            (GradingPolicy.average, [1, 2, 3, 4, 5]),
        ],
    )
    def test_policy_selection(self, provider, policy, expected_ids):
        selected = provider.select(5, [], policy)

        assert sorted(attempt.id for attempt in selected) == expected_ids

    def test_cohort_filter(self, provider):
        selected = provider.select(5, [2, 3], GradingPolicy.average)

        assert sorted(attempt.id for attempt in selected) == [4, 5]

    def test_include_ungraded(self, provider):
        selected = provider.select(5, [6], GradingPolicy.average, include_ungraded=True)

        assert [attempt.id for attempt in selected] == [8]

    def test_other_quiz_ignored(self, provider):
        assert [attempt.id for attempt in provider.select(6, [], GradingPolicy.average)] == [9]


class TestAggregates:
    def test_count_and_average(self, provider):
        totals = provider.count_and_average(5, [], GradingPolicy.highest)

        assert totals.count == 2
        assert totals.average == 7.5

    def test_count_and_average_empty(self, provider):
        totals = provider.count_and_average(99, [], GradingPolicy.highest)

        assert totals.count == 0
        assert totals.average is None

    def test_ordered_scores_break_ties_by_id(self, provider):
        ranked = provider.ordered_scores(5, [], GradingPolicy.average)

        assert [(r.score, r.tiebreak) for r in ranked] == [
            (5.0, 1),
            (6.0, 3),
            (7.0, 4),
            (7.0, 5),
            (8.0, 2),
        ]

    def test_ordered_scores_window(self, provider):
        ranked = provider.ordered_scores(5, [], GradingPolicy.average, offset=1, limit=2)

        assert [r.tiebreak for r in ranked] == [3, 4]

    def test_central_moments(self, provider):
        powers = provider.central_moments(5, [], GradingPolicy.first, mean=6.0)

        # scores 5 and 7
        assert powers.power2 == 2.0
        assert powers.power3 == 0.0
        assert powers.power4 == 2.0

    def test_accepts_dict_rows(self):
        provider = MemoryScoreProvider([{"id": 1, "quiz_id": 1, "user_id": 1, "sum_grades": 3}])

        assert len(provider) == 1
        assert provider.count_and_average(1, [], GradingPolicy.last).average == 3.0

    def test_fingerprint_matches_query_builder(self, provider):
        from quizstats import AttemptsQueryBuilder

        assert provider.fingerprint(5, [2, 1], GradingPolicy.last) == (
            AttemptsQueryBuilder.build(5, [1, 2], GradingPolicy.last).fingerprint
        )
