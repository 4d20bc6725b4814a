"""Clock, nonce and datetime normalization helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import threading
import time

import pandas as pd


class Clock(ABC):
    """Source of Unix time in whole seconds."""

    @abstractmethod
    def now_seconds(self) -> int:
        """Return current Unix time in seconds."""


class SystemClock(Clock):
    def now_seconds(self) -> int:
        return int(time.time())


class FixedClock(Clock):
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, seconds: int) -> None:
        self.seconds = int(seconds)

    def now_seconds(self) -> int:
        return self.seconds

    def advance(self, seconds: int = 1) -> None:
        self.seconds += int(seconds)


class NonceGenerator:
    """
    Issues decimal-string nonces from a clock's Unix seconds.

    Two calls never receive the same nonce: when the clock has not moved past the
    last issued value, the next nonce is ``last + 1``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()
        self._last: int | None = None
        self._lock = threading.Lock()

    def next_nonce(self) -> str:
        with self._lock:
            value = self.clock.now_seconds()
            if self._last is not None and value <= self._last:
                value = self._last + 1
            self._last = value
        return str(value)


def to_utc_timestamp(value: object) -> pd.Timestamp:
    """Normalize datetime-like values to UTC pandas Timestamp."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")
