"""
Clock collaborator.

Operations read the current unix time (seconds, i64) exactly once, at the
start, and pass it into the pure core as ``ActionParams.now``.
"""

from __future__ import annotations

import time


class Clock:
    """Interface for reading the current time."""

    def now(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Deterministic clock for tests, demos and replays."""

    def __init__(self, start: int = 0) -> None:
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = int(timestamp)

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"clock cannot move backwards: {seconds}")
        self._now += int(seconds)
        return self._now
