#!/usr/bin/env python3
"""
Command-line interface for quiz statistics.

Usage:
    quizstats init                                   # Create tables
    quizstats calculate --quiz 12 --policy highest   # Compute (or reuse) statistics
    quizstats calculate --quiz 12 --policy first --cohort 4 5 9 --items 10 --mark-variance 2.5 --force
    quizstats cached --quiz 12 --policy highest      # Show last calculated time
    quizstats purge                                  # Delete expired cached rows
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import timedelta

from .core.config import get_settings
from .core.types import GradingPolicy

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("quizstats.cli")


def get_db():
    """Get the pooled PostgreSQL connection."""
    from .pg_connection import PostgresDB

    return PostgresDB()


def get_calculator(db, verbose: bool = False):
    """Calculator over quiz_attempts with the quiz_statistics cache."""
    from .cache import PostgresStatisticsCache
    from .providers import PostgresScoreProvider
    from .statistics import LoggingProgress, StatisticsCalculator

    return StatisticsCalculator(
        PostgresScoreProvider(db),
        cache=PostgresStatisticsCache(db),
        progress=LoggingProgress() if verbose else None,
        time_to_cache=get_settings().stats_time_to_cache,
    )


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize the database with schema."""
    from .schema import init_database

    db = None

    try:
        db = get_db()
        logger.info("Initializing quiz statistics database...")
        applied = init_database(db)
        logger.info("Database initialized (%d migrations applied)", applied)
        return 0
    except Exception as e:
        logger.error("Failed to initialize database: %s", e)
        return 1
    finally:
        if db is not None:
            db.close()


def cmd_calculate(args: argparse.Namespace) -> int:
    """Compute statistics for a quiz, reusing a fresh cached record unless --force."""
    db = None

    try:
        db = get_db()
        calculator = get_calculator(db, verbose=args.verbose)
        stats, cache_hit = calculator.get_or_calculate(
            args.quiz,
            GradingPolicy(args.policy),
            args.cohort,
            item_count=args.items,
            sum_of_item_mark_variance=args.mark_variance,
            force_recalculate=args.force,
        )
        logger.info(
            "Quiz %d (%s): %d attempts, %s",
            args.quiz,
            calculator.using_attempts_label(args.policy),
            stats.sample_count,
            "cached" if cache_hit else "calculated",
        )
        if stats.error_ratio_out_of_domain:
            logger.warning("Consistency index above 100; error ratio is not defined")

        print(json.dumps({"cache_hit": cache_hit, **stats.to_dict()}, indent=2, default=str))
        return 0
    except Exception as e:
        logger.error("Failed to calculate statistics: %s", e)
        return 1
    finally:
        if db is not None:
            db.close()


def cmd_cached(args: argparse.Namespace) -> int:
    """Show when fresh statistics were last calculated."""
    db = None

    try:
        db = get_db()
        calculator = get_calculator(db)
        fingerprint = calculator.fingerprint(args.quiz, GradingPolicy(args.policy), args.cohort)
        computed_at = calculator.get_last_calculated_time(fingerprint)

        print(f"Fingerprint: {fingerprint}")
        if computed_at is None:
            print("Last calculated: never (or expired)")
            return 1
        print(f"Last calculated: {computed_at.isoformat()}")
        return 0
    except Exception as e:
        logger.error("Failed to read cached statistics: %s", e)
        return 1
    finally:
        if db is not None:
            db.close()


def cmd_purge(args: argparse.Namespace) -> int:
    """Delete cached statistics older than the time-to-cache window."""
    from .cache import PostgresStatisticsCache

    db = None

    try:
        db = get_db()
        calculator = get_calculator(db)
        since = calculator.clock() - timedelta(seconds=calculator.time_to_cache)
        deleted = PostgresStatisticsCache(db).purge_expired(since)
        print(f"Deleted {deleted} expired statistics rows")
        return 0
    except Exception as e:
        logger.error("Failed to purge statistics: %s", e)
        return 1
    finally:
        if db is not None:
            db.close()


def _add_selection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--quiz", type=int, required=True, help="Quiz ID")
    parser.add_argument(
        "--policy",
        choices=[policy.value for policy in GradingPolicy],
        default=GradingPolicy.highest.value,
        help="Which attempts count (default: highest)",
    )
    parser.add_argument("--cohort", type=int, nargs="*", default=[], help="User IDs (default: everyone)")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Quiz Statistics CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    subparsers.add_parser("init", help="Initialize the database")

    # calculate command
    calc_parser = subparsers.add_parser("calculate", help="Calculate quiz statistics")
    _add_selection_args(calc_parser)
    calc_parser.add_argument("--items", type=int, help="Number of positions (p)")
    calc_parser.add_argument("--mark-variance", type=float, help="Sum of per-item mark variance")
    calc_parser.add_argument("--force", action="store_true", help="Recalculate even if cached")
    calc_parser.add_argument("--verbose", action="store_true", help="Log calculation stages")

    # cached command
    cached_parser = subparsers.add_parser("cached", help="Show last calculated time")
    _add_selection_args(cached_parser)

    # purge command
    subparsers.add_parser("purge", help="Delete expired cached statistics")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "calculate": cmd_calculate,
        "cached": cmd_cached,
        "purge": cmd_purge,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
