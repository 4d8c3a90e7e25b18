"""
Caller-supplied deadlines and cancellation signals.

Every store-touching operation accepts an optional Deadline. Stores check it
before each statement and again before commit, so an expired or cancelled
deadline always rolls the transaction back.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..exceptions import DeadlineExceeded, OperationCancelled


@dataclass(frozen=True)
class Deadline:
    """
    Absolute expiry on the monotonic clock plus an optional cancel event.

    Usage:
        cancel = threading.Event()
        deadline = Deadline.after(2.0, cancel_event=cancel)
        engine.cast_vote("0xA", 1, deadline=deadline)
    """

    expires_at: Optional[float] = None
    cancel_event: Optional[threading.Event] = None

    @classmethod
    def after(cls, seconds: float, cancel_event: Optional[threading.Event] = None) -> "Deadline":
        """Deadline that expires ``seconds`` from now."""
        return cls(expires_at=time.monotonic() + seconds, cancel_event=cancel_event)

    @classmethod
    def cancellable(cls, cancel_event: threading.Event) -> "Deadline":
        """Deadline with no expiry, only a cancel signal."""
        return cls(cancel_event=cancel_event)

    def remaining(self) -> Optional[float]:
        """Seconds left before expiry, or None when there is no expiry."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def check(self, operation: Optional[str] = None) -> None:
        """Raise if the caller has cancelled or the deadline has passed."""
        if self.cancelled:
            raise OperationCancelled(operation=operation)
        if self.expired:
            raise DeadlineExceeded(operation=operation)


def check_deadline(deadline: Optional[Deadline], operation: Optional[str] = None) -> None:
    """Shorthand for ``deadline.check()`` that tolerates ``None``."""
    if deadline is not None:
        deadline.check(operation)
