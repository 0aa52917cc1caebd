"""Clock sources used by the timer engine."""
from __future__ import annotations

import time


class ClockSource:
    """Return the current instant in seconds."""

    def now(self) -> float:
        raise NotImplementedError


class SystemClock(ClockSource):
    def now(self) -> float:
        return time.monotonic()


class ManualClock(ClockSource):
    """Clock that only moves when told to, for replays and tests."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now

    def set(self, instant: float) -> None:
        self._now = float(instant)
