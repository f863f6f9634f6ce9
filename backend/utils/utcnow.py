"""UTC and epoch-millisecond clock helpers.

``utcnow()`` produces the naive UTC datetimes used in log records.
``now_ms()`` is the wall-clock source for leadership history timestamps,
expressed like the query API expects: Unix epoch milliseconds.
"""

import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive (tzinfo=None) datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    """Return the current Unix epoch time in milliseconds."""
    return time.time_ns() // 1_000_000
