"""Utility functions for grovr."""

from .threading import is_free_threading_enabled, get_optimal_worker_count

__all__ = [
    "is_free_threading_enabled",
    "get_optimal_worker_count",
]
