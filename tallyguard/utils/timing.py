"""
Timing utilities for store and engine operations.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class TimingResult:
    """Result of a timed operation."""
    name: str
    duration_sec: float
    success: bool = True
    error: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        return self.duration_sec * 1000

    def __str__(self) -> str:
        if self.duration_sec < 1:
            return f"{self.name}: {self.duration_ms:.1f}ms"
        return f"{self.name}: {self.duration_sec:.2f}s"


@contextmanager
def timed_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    log_level: int = logging.DEBUG
) -> Iterator[TimingResult]:
    """
    Context manager for timing operations.

    Usage:
        with timed_operation("cast_vote", logger) as timing:
            engine.cast_vote(address, candidate_id)
        print(f"Took {timing.duration_ms:.1f}ms")

    Args:
        name: Name of the operation (for logging)
        logger: Optional logger to log timing
        log_level: Log level for timing message

    Yields:
        TimingResult that will be populated on exit
    """
    result = TimingResult(name=name, duration_sec=0.0)
    start = time.perf_counter()

    try:
        yield result
        result.success = True
    except Exception as e:
        result.success = False
        result.error = type(e).__name__
        raise
    finally:
        result.duration_sec = time.perf_counter() - start

        if logger:
            msg = str(result)
            if not result.success:
                msg += f" (failed: {result.error})"
            logger.log(log_level, msg)


class Timer:
    """
    Accumulating timer for repeated operations.

    Safe to share between threads: durations are recorded under a lock.

    Usage:
        timer = Timer()
        timer.record("cast_vote", 0.012)
        timer.record("cast_vote", 0.020)
        print(timer.summary())
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._totals: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        self._global_start: float = time.perf_counter()

    def record(self, name: str, duration: float) -> None:
        """Add one completed run of ``name``."""
        with self._lock:
            self._totals[name] = self._totals.get(name, 0.0) + duration
            self._counts[name] = self._counts.get(name, 0) + 1

    def get_total(self, name: str) -> float:
        return self._totals.get(name, 0.0)

    def get_count(self, name: str) -> int:
        return self._counts.get(name, 0)

    def get_average(self, name: str) -> float:
        count = self._counts.get(name, 0)
        return self._totals.get(name, 0.0) / count if count > 0 else 0.0

    @property
    def elapsed(self) -> float:
        """Seconds since the timer was created."""
        return time.perf_counter() - self._global_start

    def summary(self) -> str:
        """One line per operation: total, count and average."""
        lines = ["Timing Summary:"]
        with self._lock:
            names = sorted(self._totals)
            for name in names:
                count = self._counts[name]
                total = self._totals[name]
                lines.append(
                    f"  {name}: {_format_duration(total)} "
                    f"({count}x, avg {_format_duration(total / count)})"
                )
        lines.append(f"  Total elapsed: {_format_duration(self.elapsed)}")
        return "\n".join(lines)


def _format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    return f"{seconds:.2f}s"
