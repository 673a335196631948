"""
Database schema management for quiz statistics.

Handles initialization, migrations, and migration tracking in the meta table.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .pg_connection import PostgresDB

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def get_migration_files() -> list[Path]:
    """Get all SQL migration files in order."""
    if not MIGRATIONS_DIR.exists():
        return []

    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def _is_applied(db: "PostgresDB", migration_name: str) -> bool:
    exists = db.fetchone(
        "SELECT EXISTS(SELECT 1 FROM information_schema.tables WHERE table_name = 'meta') AS exists"
    )
    if not exists or not exists["exists"]:
        return False
    row = db.fetchone(
        "SELECT value FROM meta WHERE key = %s",
        (f"migration_{migration_name}",),
    )
    return row is not None


def run_migrations(db: "PostgresDB", force: bool = False) -> int:
    """
    Run all pending migrations.

    Args:
        db: Database connection
        force: If True, run all migrations even if already applied

    Returns:
        Number of migrations applied
    """
    migration_files = get_migration_files()
    if not migration_files:
        logger.warning("No migration files found in %s", MIGRATIONS_DIR)
        return 0

    applied = 0

    for migration_file in migration_files:
        migration_name = migration_file.stem

        if not force and _is_applied(db, migration_name):
            logger.debug("Skipping already applied migration: %s", migration_name)
            continue

        logger.info("Applying migration: %s", migration_name)

        try:
            db.executescript(migration_file.read_text())
            db.execute(
                """
                INSERT INTO meta (key, value, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT(key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                (f"migration_{migration_name}", "applied"),
            )
        except Exception as e:
            logger.error("Failed to apply migration %s: %s", migration_name, e)
            raise

        applied += 1
        logger.info("Successfully applied migration: %s", migration_name)

    return applied


def init_database(db: "PostgresDB") -> int:
    """
    Initialize the database with the full schema.

    Args:
        db: Database connection

    Returns:
        Number of migrations applied
    """
    logger.info("Initializing quiz statistics schema")
    applied = run_migrations(db)
    logger.info("Database initialized with %d migrations", applied)
    return applied
