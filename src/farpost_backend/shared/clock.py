"""Time sources used by the extraction scheduler and the economy engine."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything able to report the current wall-clock time in epoch milliseconds."""

    def now_ms(self) -> int:
        """Return the current time in milliseconds since the epoch."""


class SystemClock:
    """Clock backed by :func:`time.time`."""

    def now_ms(self) -> int:
        """Return the current system time in milliseconds."""
        return int(time.time() * 1000)


class ManualClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start_ms: int = 0) -> None:
        if start_ms < 0:
            msg = "Clock start must be non-negative."
            raise ValueError(msg)
        self._now = start_ms

    def now_ms(self) -> int:
        """Return the frozen current time."""
        return self._now

    def advance(self, delta_ms: int) -> int:
        """Move the clock forward by *delta_ms* and return the new time."""
        if delta_ms < 0:
            msg = "Clock cannot move backwards."
            raise ValueError(msg)
        self._now += delta_ms
        return self._now

    def set(self, now_ms: int) -> None:
        """Jump to an absolute time, which may not precede the current one."""
        if now_ms < self._now:
            msg = "Clock cannot move backwards."
            raise ValueError(msg)
        self._now = now_ms


__all__ = ["Clock", "ManualClock", "SystemClock"]
