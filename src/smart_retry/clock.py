"""
Time source for smart_retry
"""
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of elapsed time in milliseconds. Only differences are meaningful."""

    def now_ms(self) -> float:
        ...


class MonotonicClock:
    """Clock backed by time.monotonic()."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000


DEFAULT_CLOCK = MonotonicClock()
