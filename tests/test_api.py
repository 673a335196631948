"""
API contract tests for the statistics endpoints.

The calculator dependency is overridden with an in-memory one, so these run
without a database.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import make_attempts
from quizstats import MemoryScoreProvider, MemoryStatisticsCache, StatisticsCalculator
from quizstats.api.dependencies import get_calculator
from quizstats.api.main import create_app


@pytest.fixture
def client(clock):
    provider = MemoryScoreProvider(make_attempts([2, 4, 4, 4, 5, 5, 7, 9], quiz_id=12))
    calculator = StatisticsCalculator(provider, cache=MemoryStatisticsCache(), clock=clock)

    app = create_app()
    app.dependency_overrides[get_calculator] = lambda: calculator
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


class TestStatisticsEndpoint:
    def test_miss_then_hit(self, client):
        first = client.get("/api/v1/quizzes/12/statistics")
        second = client.get("/api/v1/quizzes/12/statistics")

        assert first.status_code == 200
        assert first.headers["X-Cache"] == "MISS"
        assert first.json()["cache_hit"] is False
        assert second.headers["X-Cache"] == "HIT"
        assert second.json()["statistics"] == first.json()["statistics"]

    def test_response_shape(self, client):
        body = client.get(
            "/api/v1/quizzes/12/statistics", params={"items": 10, "mark_variance": 2.0}
        ).json()
        stats = body["statistics"]

        assert body["quiz_id"] == 12
        assert body["cohort"] == []
        assert stats["grading_policy"] == "highestattempts"
        assert stats["sample_count"] == 8
        assert stats["median"] == 4.5
        assert stats["consistency_index"] == pytest.approx(62.5)
        assert stats["error_ratio_out_of_domain"] is False
        assert set(stats["totals"]) == {
            "highestattempts",
            "allattempts",
            "firstattempts",
            "lastattempts",
        }

    def test_policy_label_accepted(self, client):
        response = client.get("/api/v1/quizzes/12/statistics", params={"policy": "lastattempts"})

        assert response.status_code == 200
        assert response.json()["statistics"]["grading_policy"] == "lastattempts"

    def test_cohort_filter(self, client):
        response = client.get(
            "/api/v1/quizzes/12/statistics", params=[("cohort", 101), ("cohort", 100)]
        )
        body = response.json()

        assert body["cohort"] == [100, 101]
        assert body["statistics"]["sample_count"] == 2
        assert body["statistics"]["median"] == 3

    def test_refresh_bypasses_cache(self, client):
        client.get("/api/v1/quizzes/12/statistics")
        response = client.get("/api/v1/quizzes/12/statistics", params={"refresh": True})

        assert response.headers["X-Cache"] == "MISS"

    def test_unknown_policy(self, client):
        response = client.get("/api/v1/quizzes/12/statistics", params={"policy": "best"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_empty_quiz(self, client):
        body = client.get("/api/v1/quizzes/99/statistics").json()

        assert body["statistics"]["sample_count"] == 0
        assert body["statistics"]["median"] is None


class TestLastCalculated:
    def test_null_until_calculated(self, client):
        before = client.get("/api/v1/quizzes/12/statistics/last-calculated").json()
        client.get("/api/v1/quizzes/12/statistics")
        after = client.get("/api/v1/quizzes/12/statistics/last-calculated").json()

        assert before["computed_at"] is None
        assert before["fingerprint"] == after["fingerprint"]
        assert after["grading_policy"] == "highestattempts"
        assert after["computed_at"].startswith("2025-03-01T09:00:00")

    def test_expires(self, client, clock):
        client.get("/api/v1/quizzes/12/statistics")
        clock.advance(900)

        body = client.get("/api/v1/quizzes/12/statistics/last-calculated").json()

        assert body["computed_at"] is None
