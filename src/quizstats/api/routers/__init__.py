"""API routers."""

from . import statistics

__all__ = ["statistics"]
