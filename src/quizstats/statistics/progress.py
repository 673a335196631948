"""
Progress reporting for long-running statistics calculations.

The calculator reports three stages: counts done, median done, moments done.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressReporter(Protocol):
    """Observer notified as a calculation advances."""

    def start(self, total: int) -> None: ...

    def progress(self, done: int) -> None: ...

    def end(self) -> None: ...


class NullProgress:
    """Reporter that ignores every notification."""

    def start(self, total: int) -> None:
        pass

    def progress(self, done: int) -> None:
        pass

    def end(self) -> None:
        pass


class LoggingProgress:
    """Reporter that logs each completed stage."""

    def __init__(self, name: str = "statistics", level: int = logging.INFO):
        self.name = name
        self.level = level
        self.total = 0
        self.done = 0

    def start(self, total: int) -> None:
        self.total = total
        self.done = 0
        logger.log(self.level, "%s: starting (%d stages)", self.name, total)

    def progress(self, done: int) -> None:
        self.done = done
        logger.log(self.level, "%s: stage %d of %d complete", self.name, done, self.total)

    def end(self) -> None:
        logger.log(self.level, "%s: finished after %d of %d stages", self.name, self.done, self.total)
