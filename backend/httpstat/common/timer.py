"""
Timer Module

Provides the monotonic clock used to stamp request lifecycle milestones.

All instants and durations are integer nanoseconds so that millisecond
truncation is exact (no float rounding at phase boundaries).
"""

import time
from typing import Callable, Optional

# Clock signature: returns a monotonic instant in nanoseconds
Clock = Callable[[], int]

NS_PER_MS = 1_000_000


def monotonic_ns() -> int:
    """
    Read the monotonic high-resolution clock

    Uses time.perf_counter_ns(), the same clock source as perf_counter().

    Returns:
        int: Current instant (ns), only meaningful relative to other instants
    """
    return time.perf_counter_ns()


def ns_to_ms(duration_ns: Optional[int]) -> int:
    """
    Truncate a duration to whole milliseconds

    Integer division, not rounding: 19.9 ms reports as 19 ms.
    An unknown duration (None) reports as 0.

    Args:
        duration_ns: Duration in nanoseconds, or None

    Returns:
        int: Whole milliseconds
    """
    if duration_ns is None:
        return 0
    return duration_ns // NS_PER_MS
