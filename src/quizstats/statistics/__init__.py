"""
Overall quiz statistics calculation.
"""

from .calculator import PROGRESS_STAGES, StatisticsCalculator
from .colours import GRAPH_COLOURS, GraphColours
from .progress import LoggingProgress, NullProgress, ProgressReporter
from .results import AttemptTotals, CalculatedStatistics

__all__ = [
    "StatisticsCalculator",
    "PROGRESS_STAGES",
    "CalculatedStatistics",
    "AttemptTotals",
    "ProgressReporter",
    "NullProgress",
    "LoggingProgress",
    "GraphColours",
    "GRAPH_COLOURS",
]
