"""
Explicit outcome of a caller-facing operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..exceptions import ErrorKind, VotingError


@dataclass
class OperationResult:
    """
    Result of a caller-facing operation.

    Routine domain outcomes (not found, not authorized, already voted) are
    returned here instead of being raised at the caller.
    """
    success: bool = True
    message: str = ""
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    timing_sec: float = 0.0
    attempts: int = 1

    @property
    def retryable(self) -> bool:
        """True when the failure is transient and the call may be repeated."""
        return self.error_kind is not None and self.error_kind.retryable

    @classmethod
    def ok(cls, data: Any = None, message: str = "", timing_sec: float = 0.0, attempts: int = 1) -> "OperationResult":
        """Create successful result."""
        return cls(success=True, data=data, message=message, timing_sec=timing_sec, attempts=attempts)

    @classmethod
    def failure(cls, exc: VotingError, timing_sec: float = 0.0, attempts: int = 1) -> "OperationResult":
        """Create error result from a VotingError."""
        return cls(
            success=False,
            message=exc.message,
            error=type(exc).__name__,
            error_kind=exc.kind,
            timing_sec=timing_sec,
            attempts=attempts,
        )
