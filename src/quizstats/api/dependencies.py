"""
Dependency injection for API endpoints.

Routes use the synchronous psycopg pool; FastAPI runs sync dependencies and
handlers in its thread pool.
"""

from typing import Annotated, Optional

from fastapi import Depends

from ..cache import MemoryStatisticsCache, PostgresStatisticsCache, StatisticsCache
from ..core.config import get_settings
from ..pg_connection import PostgresDB, close_postgres_db, get_postgres_db
from ..providers import PostgresScoreProvider
from ..statistics import StatisticsCalculator
from .errors import ServiceUnavailableError

_db_instance: PostgresDB | None = None
_cache_instance: Optional[StatisticsCache] = None


def get_db() -> PostgresDB:
    """
    Dependency that provides synchronous database connection.

    Returns:
        PostgresDB instance with connection pooling
    """
    global _db_instance
    if _db_instance is None:
        try:
            _db_instance = get_postgres_db()
        except ValueError as e:
            raise ServiceUnavailableError("database", str(e)) from e
    return _db_instance


def close_db() -> None:
    """Close the global database connection. Called at app shutdown."""
    global _db_instance, _cache_instance
    if _db_instance is not None:
        close_postgres_db()
        _db_instance = None
        _cache_instance = None


DBDependency = Annotated[PostgresDB, Depends(get_db)]


def get_statistics_cache(db: DBDependency) -> StatisticsCache:
    """Cache backend selected by the CACHE_BACKEND setting."""
    global _cache_instance
    if _cache_instance is None:
        if get_settings().cache_backend == "postgres":
            _cache_instance = PostgresStatisticsCache(db)
        else:
            _cache_instance = MemoryStatisticsCache()
    return _cache_instance


def get_calculator(
    db: DBDependency,
    cache: Annotated[StatisticsCache, Depends(get_statistics_cache)],
) -> StatisticsCalculator:
    """Calculator wired to the attempts table and the configured cache."""
    return StatisticsCalculator(
        PostgresScoreProvider(db),
        cache=cache,
        time_to_cache=get_settings().stats_time_to_cache,
    )


CalculatorDependency = Annotated[StatisticsCalculator, Depends(get_calculator)]
