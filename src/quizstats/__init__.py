"""
Quiz Statistics Module

Descriptive statistics over quiz attempt scores, cached per attempt-set
fingerprint.

Key Features:
- Counts and averages for every grading policy (first, highest, last, all attempts)
- Median, standard deviation, skewness, kurtosis
- Consistency index, error ratio and standard error from item mark variance
- Time-expiring cache (in memory or in PostgreSQL)

Usage:
    from quizstats import StatisticsCalculator, MemoryScoreProvider, GradingPolicy

    provider = MemoryScoreProvider(attempts)
    calculator = StatisticsCalculator(provider)
    stats = calculator.calculate(quiz_id=12, grading_policy=GradingPolicy.highest)

    # Later, within 15 minutes
    cached = calculator.get_cached(stats.fingerprint)
"""

from .cache import MemoryStatisticsCache, PostgresStatisticsCache, StatisticsCache
from .core.types import TIME_TO_CACHE, GradingPolicy, grading_policy_label
from .models import AttemptModel, StatisticsRecord
from .providers import MemoryScoreProvider, PostgresScoreProvider, ScoreProvider
from .query_builder import AttemptsQuery, AttemptsQueryBuilder
from .statistics import (
    AttemptTotals,
    CalculatedStatistics,
    GraphColours,
    LoggingProgress,
    NullProgress,
    StatisticsCalculator,
)

__all__ = [
    # Calculator
    "StatisticsCalculator",
    "CalculatedStatistics",
    "AttemptTotals",
    "NullProgress",
    "LoggingProgress",
    "GraphColours",
    # Types
    "GradingPolicy",
    "grading_policy_label",
    "TIME_TO_CACHE",
    # Providers
    "ScoreProvider",
    "MemoryScoreProvider",
    "PostgresScoreProvider",
    # Cache
    "StatisticsCache",
    "MemoryStatisticsCache",
    "PostgresStatisticsCache",
    # Models
    "AttemptModel",
    "StatisticsRecord",
    # Query builder
    "AttemptsQuery",
    "AttemptsQueryBuilder",
]
