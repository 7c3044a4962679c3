"""
Stopwatch used to time cache-assisted reads.
"""

import time
from typing import Optional


class Timer:
    """Monotonic stopwatch."""

    def __init__(self, autostart: bool = True):
        self._start_time: Optional[float] = None
        if autostart:
            self.start()

    @staticmethod
    def now() -> float:
        return time.perf_counter()

    @property
    def start_time(self) -> Optional[float]:
        return self._start_time

    def start(self) -> None:
        """Start (or restart) the stopwatch."""
        self._start_time = self.now()

    def elapsed(self) -> Optional[float]:
        """Seconds since start(), or None if the timer was never started."""
        if self._start_time is None:
            return None
        return self.now() - self._start_time
