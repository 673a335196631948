"""Statistics cache stores keyed by attempt-set fingerprint."""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from .core.types import STATISTICS_TABLE
from .models import StatisticsRecord
from .statistics.results import CalculatedStatistics

if TYPE_CHECKING:
    from .pg_connection import PostgresDB

logger = logging.getLogger(__name__)


class StatisticsCache(ABC):
    """
    Store of computed statistics.

    Readers pass ``since``: only a record computed strictly after it is
    returned. Expiry policy lives with the caller.
    """

    @abstractmethod
    def get(self, fingerprint: str, since: datetime) -> Optional[CalculatedStatistics]:
        """Newest record for fingerprint computed after since, else None."""
        ...

    @abstractmethod
    def get_computed_at(self, fingerprint: str, since: datetime) -> Optional[datetime]:
        """computed_at of the newest record after since, else None."""
        ...

    @abstractmethod
    def store(self, stats: CalculatedStatistics) -> None:
        """Save a record. Last writer wins."""
        ...


class MemoryStatisticsCache(StatisticsCache):
    """Thread-safe in-memory statistics cache."""

    def __init__(self):
        self._cache: dict[str, CalculatedStatistics] = {}
        self._lock = threading.RLock()

    def get(self, fingerprint: str, since: datetime) -> Optional[CalculatedStatistics]:
        with self._lock:
            stats = self._cache.get(fingerprint)
            if stats is not None and stats.computed_at > since:
                return copy.deepcopy(stats)
        return None

    def get_computed_at(self, fingerprint: str, since: datetime) -> Optional[datetime]:
        with self._lock:
            stats = self._cache.get(fingerprint)
            if stats is not None and stats.computed_at > since:
                return stats.computed_at
        return None

    def store(self, stats: CalculatedStatistics) -> None:
        # Validates fingerprint/computed_at the same way the database store does
        StatisticsRecord.from_statistics(stats)
        with self._lock:
            self._cache[stats.fingerprint] = copy.deepcopy(stats)

    def size(self) -> int:
        """Get number of cached entries."""
        with self._lock:
            return len(self._cache)

    def cleanup_expired(self, since: datetime) -> int:
        """Remove entries computed at or before since."""
        with self._lock:
            expired_keys = [
                key for key, stats in self._cache.items()
                if stats.computed_at <= since
            ]
            for key in expired_keys:
                del self._cache[key]
        return len(expired_keys)


class PostgresStatisticsCache(StatisticsCache):
    """
    Statistics cache stored in the quiz_statistics table.

    Every store appends a row; stale rows for the same fingerprint may
    coexist until purge_expired() removes them.
    """

    def __init__(self, db: "PostgresDB"):
        self.db = db

    def get(self, fingerprint: str, since: datetime) -> Optional[CalculatedStatistics]:
        columns = ", ".join(StatisticsRecord.columns())
        row = self.db.fetchone(
            f"""
            SELECT {columns}
            FROM {STATISTICS_TABLE}
            WHERE fingerprint = %s AND computed_at > %s
            ORDER BY computed_at DESC, id DESC
            LIMIT 1
            """,
            (fingerprint, since),
        )
        if not row:
            return None
        return StatisticsRecord.model_validate(row).to_statistics()

    def get_computed_at(self, fingerprint: str, since: datetime) -> Optional[datetime]:
        row = self.db.fetchone(
            f"""
            SELECT MAX(computed_at) AS computed_at
            FROM {STATISTICS_TABLE}
            WHERE fingerprint = %s AND computed_at > %s
            """,
            (fingerprint, since),
        )
        return row["computed_at"] if row else None

    def store(self, stats: CalculatedStatistics) -> None:
        record = StatisticsRecord.from_statistics(stats)
        values = record.model_dump()
        columns = list(values)
        placeholders = ", ".join("%s" for _ in columns)
        self.db.execute(
            f"INSERT INTO {STATISTICS_TABLE} ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(values[column] for column in columns),
        )
        logger.debug("Stored statistics %s computed at %s", record.fingerprint, record.computed_at)

    def purge_expired(self, since: datetime) -> int:
        """Delete rows computed at or before since. Returns rows deleted."""
        with self.db.transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"DELETE FROM {STATISTICS_TABLE} WHERE computed_at <= %s",
                    (since,),
                )
                deleted = cur.rowcount
        logger.info("Purged %d expired statistics rows", deleted)
        return deleted
