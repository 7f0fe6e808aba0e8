"""Worker-count helpers for the background executors."""

import os
import sys
from typing import Optional


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with the GIL disabled (3.13+ free-threading build)."""
    try:
        return hasattr(sys, "_is_gil_enabled") and not sys._is_gil_enabled()
    except Exception:
        return False


def get_optimal_worker_count(user_specified: Optional[int] = None, cap: int = 32) -> int:
    """Calculate a worker count for running git subprocesses in parallel.

    Args:
        user_specified: Explicit worker count, used as-is when positive
        cap: Upper bound for the auto-detected value

    Returns:
        Number of workers to use
    """
    if user_specified is not None and user_specified > 0:
        return user_specified

    cpu_count = os.cpu_count() or 1

    if is_free_threading_enabled():
        return min(cap, cpu_count * 2)

    # Subprocess-bound work: threads mostly wait, so go a little above the CPU count
    return min(cap, cpu_count + 4)
