"""Time utilities for token records."""

import time
from collections.abc import Callable
from datetime import UTC, datetime

# Returns milliseconds since the Unix epoch.
Clock = Callable[[], int]


def now_ms() -> int:
    """Return the current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)
