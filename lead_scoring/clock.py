"""
Time helpers for predictive scoring.

All timestamps inside the engine are naive UTC.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RecomputeClock:
    """
    Issues strictly increasing recompute timestamps.

    Follows wall-clock UTC, but never steps backwards: if the system
    clock is set back, timestamps advance by one microsecond from the
    last one issued until the wall clock catches up.
    """

    TICK = timedelta(microseconds=1)

    def __init__(self, now=utc_now):
        self._now = now
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def next(self) -> datetime:
        with self._lock:
            current = as_naive_utc(self._now())
            if self._last is not None and current <= self._last:
                current = self._last + self.TICK
            self._last = current
            return current

    def observe(self, value: datetime) -> None:
        """Make later timestamps come after an externally supplied one."""
        value = as_naive_utc(value)
        with self._lock:
            if self._last is None or value > self._last:
                self._last = value
