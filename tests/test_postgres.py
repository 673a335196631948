"""
PostgreSQL integration tests for quizstats.

These tests verify:
- Connection pooling and schema initialization
- SQL attempt selection matches the in-memory provider
- Statistics cache rows: store, freshness window, purge

Each test works in its own quiz id range and removes its rows afterwards.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from quizstats import (
    GradingPolicy,
    MemoryScoreProvider,
    PostgresScoreProvider,
    PostgresStatisticsCache,
    StatisticsCalculator,
)

# Skip all tests if DATABASE_URL is not set
pytestmark = pytest.mark.skipif(
    not os.getenv("DATABASE_URL") and not os.getenv("NEON_DATABASE_URL"),
    reason="DATABASE_URL environment variable not set",
)

TEST_QUIZ_ID = 900_001

# (user_id, attempt_number, state, is_preview, sum_grades)
ATTEMPT_ROWS = [
    (1, 1, "finished", False, 5.0),
    (1, 2, "finished", False, 8.0),
    (1, 3, "finished", False, 6.0),
    (2, 1, "finished", False, 7.0),
    (2, 2, "finished", False, 7.0),
    (3, 1, "finished", True, 10.0),
    (4, 1, "inprogress", False, None),
    (5, 1, "finished", False, 2.0),
    (6, 1, "finished", False, 9.5),
    (6, 2, "finished", False, 3.0),
]


@pytest.fixture(scope="module")
def db():
    from quizstats.pg_connection import PostgresDB
    from quizstats.schema import init_database

    database = PostgresDB()
    init_database(database)
    yield database
    database.close()


@pytest.fixture
def attempts(db):
    """Insert the attempt rows and return them as loaded back from the table."""
    db.execute("DELETE FROM quiz_attempts WHERE quiz_id = %s", (TEST_QUIZ_ID,))
    db.executemany(
        """
        INSERT INTO quiz_attempts (quiz_id, user_id, attempt_number, state, is_preview, sum_grades)
        VALUES (%s, %s, %s, %s, %s, %s)
        """,
        [(TEST_QUIZ_ID,) + row for row in ATTEMPT_ROWS],
    )
    rows = db.fetchall(
        """
        SELECT id, quiz_id, user_id, attempt_number, state, is_preview, sum_grades
        FROM quiz_attempts WHERE quiz_id = %s ORDER BY id
        """,
        (TEST_QUIZ_ID,),
    )
    yield rows
    db.execute("DELETE FROM quiz_attempts WHERE quiz_id = %s", (TEST_QUIZ_ID,))


@pytest.fixture
def statistics_cache(db):
    cache = PostgresStatisticsCache(db)
    yield cache
    db.execute("DELETE FROM quiz_statistics WHERE grading_policy = %s", ("test",))


class TestPostgresDBConnection:
    def test_connection_requires_url(self):
        from quizstats.core.config import Settings
        from quizstats.pg_connection import PostgresDB

        with patch.dict(os.environ, {}, clear=True):
            bare = Settings(_env_file=None)
            with patch("quizstats.pg_connection.get_settings", return_value=bare):
                with pytest.raises(ValueError, match="DATABASE_URL"):
                    PostgresDB()

    def test_simple_query(self, db):
        assert db.fetchone("SELECT 1 AS test")["test"] == 1

    def test_schema_initialized(self, db):
        from quizstats.schema import init_database

        assert db.is_initialized()
        # Already applied migrations are skipped
        assert init_database(db) == 0


class TestPostgresScoreProvider:
    @pytest.mark.parametrize("policy", list(GradingPolicy))
    @pytest.mark.parametrize("cohort", [[], [1, 6], [2]])
    def test_matches_memory_provider(self, db, attempts, policy, cohort):
        sql = PostgresScoreProvider(db)
        memory = MemoryScoreProvider(attempts)

        sql_totals = sql.count_and_average(TEST_QUIZ_ID, cohort, policy)
        memory_totals = memory.count_and_average(TEST_QUIZ_ID, cohort, policy)

        assert sql_totals.count == memory_totals.count
        assert sql_totals.average == pytest.approx(memory_totals.average)
        assert sql.ordered_scores(TEST_QUIZ_ID, cohort, policy) == memory.ordered_scores(
            TEST_QUIZ_ID, cohort, policy
        )

    def test_median_window(self, db, attempts):
        provider = PostgresScoreProvider(db)

        ranked = provider.ordered_scores(TEST_QUIZ_ID, [], GradingPolicy.average, offset=3, limit=2)

        assert [r.score for r in ranked] == [6.0, 7.0]

    def test_power_sums(self, db, attempts):
        provider = PostgresScoreProvider(db)

        # first attempts: 5, 7, 2, 9.5 with mean 5.875
        powers = provider.central_moments(TEST_QUIZ_ID, [], GradingPolicy.first, mean=5.875)

        deviations = [5 - 5.875, 7 - 5.875, 2 - 5.875, 9.5 - 5.875]
        assert powers.power2 == pytest.approx(sum(d**2 for d in deviations))
        assert powers.power3 == pytest.approx(sum(d**3 for d in deviations))
        assert powers.power4 == pytest.approx(sum(d**4 for d in deviations))

    def test_calculator_parity(self, db, attempts):
        from quizstats import MemoryStatisticsCache

        sql = StatisticsCalculator(PostgresScoreProvider(db), cache=MemoryStatisticsCache())
        memory = StatisticsCalculator(MemoryScoreProvider(attempts), cache=MemoryStatisticsCache())

        a = sql.calculate(TEST_QUIZ_ID, GradingPolicy.average, item_count=5, sum_of_item_mark_variance=1.0)
        b = memory.calculate(TEST_QUIZ_ID, GradingPolicy.average, item_count=5, sum_of_item_mark_variance=1.0)

        assert a.fingerprint == b.fingerprint
        assert a.median == b.median
        assert a.standard_deviation == pytest.approx(b.standard_deviation)
        assert a.skewness == pytest.approx(b.skewness)
        assert a.kurtosis == pytest.approx(b.kurtosis)
        assert a.consistency_index == pytest.approx(b.consistency_index)


class TestPostgresStatisticsCache:
    def _stats(self, fingerprint, computed_at, median=4.0):
        from quizstats import AttemptTotals, CalculatedStatistics

        stats = CalculatedStatistics(
            grading_policy=None,
            median=median,
            fingerprint=fingerprint,
            computed_at=computed_at,
        )
        stats.totals[GradingPolicy.highest] = AttemptTotals(3, 6.0)
        return stats

    def _store(self, cache, stats):
        # Tag rows so teardown can find them
        from quizstats.models import StatisticsRecord

        record = StatisticsRecord.from_statistics(stats).model_copy(update={"grading_policy": "test"})
        values = record.model_dump()
        columns = list(values)
        cache.db.execute(
            f"INSERT INTO quiz_statistics ({', '.join(columns)}) VALUES ({', '.join('%s' for _ in columns)})",
            tuple(values[c] for c in columns),
        )

    def test_newest_fresh_row_wins(self, statistics_cache):
        now = datetime.now(tz=timezone.utc)
        fingerprint = "pgtest-newest"
        self._store(statistics_cache, self._stats(fingerprint, now - timedelta(seconds=30), median=1.0))
        self._store(statistics_cache, self._stats(fingerprint, now - timedelta(seconds=10), median=2.0))

        row = statistics_cache.db.fetchone(
            "SELECT median FROM quiz_statistics WHERE fingerprint = %s ORDER BY computed_at DESC LIMIT 1",
            (fingerprint,),
        )
        computed_at = statistics_cache.get_computed_at(fingerprint, now - timedelta(seconds=900))

        assert row["median"] == 2.0
        assert computed_at == now - timedelta(seconds=10)

    def test_expired_rows_ignored(self, statistics_cache):
        now = datetime.now(tz=timezone.utc)
        fingerprint = "pgtest-expired"
        self._store(statistics_cache, self._stats(fingerprint, now - timedelta(seconds=900)))

        since = now - timedelta(seconds=900)
        assert statistics_cache.get_computed_at(fingerprint, since) is None

    def test_store_and_get(self, db):
        cache = PostgresStatisticsCache(db)
        now = datetime.now(tz=timezone.utc)
        stats = self._stats("pgtest-roundtrip", now)
        stats.grading_policy = GradingPolicy.last
        try:
            cache.store(stats)
            loaded = cache.get("pgtest-roundtrip", now - timedelta(seconds=1))

            assert loaded is not None
            assert loaded.grading_policy is GradingPolicy.last
            assert loaded.median == 4.0
            assert loaded.totals_for(GradingPolicy.highest).average == 6.0
        finally:
            db.execute("DELETE FROM quiz_statistics WHERE fingerprint = %s", ("pgtest-roundtrip",))

    def test_purge_expired(self, statistics_cache):
        now = datetime.now(tz=timezone.utc)
        self._store(statistics_cache, self._stats("pgtest-purge-old", now - timedelta(days=3650)))

        deleted = statistics_cache.purge_expired(now - timedelta(days=3000))

        assert deleted >= 1
        assert statistics_cache.get_computed_at("pgtest-purge-old", now - timedelta(days=4000)) is None
