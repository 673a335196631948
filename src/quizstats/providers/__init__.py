"""
Score providers.

Provides attempt-score aggregates for the statistics calculator:
- ScoreProvider: abstract interface
- PostgresScoreProvider: SQL aggregates over quiz_attempts
- MemoryScoreProvider: same selection rules over in-memory records
"""

from .base import PowerSums, RankedScore, ScoreProvider
from .memory import MemoryScoreProvider
from .postgres import PostgresScoreProvider

__all__ = [
    "ScoreProvider",
    "RankedScore",
    "PowerSums",
    "MemoryScoreProvider",
    "PostgresScoreProvider",
]
