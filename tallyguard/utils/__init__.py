"""
Utility functions for the voting core.
"""

from .deadline import Deadline, check_deadline
from .timing import timed_operation, Timer, TimingResult

__all__ = [
    # Deadline utilities
    "Deadline",
    "check_deadline",

    # Timing utilities
    "timed_operation",
    "Timer",
    "TimingResult",
]
