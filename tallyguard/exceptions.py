"""
Custom exceptions for the voting core.

All application-specific exceptions inherit from VotingError and carry an
ErrorKind so callers can tell "try again" failures apart from
"this action is not permitted" failures.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Any


class ErrorKind(str, Enum):
    """Coarse classification of every error the core can surface."""

    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    PRECONDITION_FAILED = "precondition_failed"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    CANCELLED = "cancelled"
    CORRUPTED = "corrupted"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.CONFLICT, ErrorKind.UNAVAILABLE)


class VotingError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        kind: Error classification
        recoverable: Whether retrying the same call can succeed
    """

    kind: ErrorKind = ErrorKind.PRECONDITION_FAILED

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if kind is not None:
            self.kind = kind

    @property
    def recoverable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(VotingError):
    """
    Invalid or missing configuration.

    Examples:
        - Unknown store backend
        - PostgreSQL selected without DB_HOST / DB_NAME / DB_USER
    """

    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details)


class InvalidArgument(VotingError):
    """
    Caller supplied a malformed value.

    Examples:
        - Empty candidate name
        - Blank voter address
        - Candidate id that is not a positive integer
    """

    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)[:100]
        super().__init__(message, details=details)


class NotFound(VotingError):
    """A voter or candidate does not exist."""

    kind = ErrorKind.NOT_FOUND


class VoterNotFound(NotFound):
    """No voter is registered under the given address."""

    def __init__(self, address: str):
        super().__init__("Voter not found.", details={"address": address})
        self.address = address


class CandidateNotFound(NotFound):
    """No candidate exists with the given id."""

    def __init__(self, candidate_id: Any):
        super().__init__("Candidate not found.", details={"candidate_id": candidate_id})
        self.candidate_id = candidate_id


class PreconditionFailed(VotingError):
    """The voter is not in a state that permits the action."""

    kind = ErrorKind.PRECONDITION_FAILED


class NotAuthorized(PreconditionFailed):
    """Voter exists but has not been authorized to vote."""

    def __init__(self, address: str):
        super().__init__(
            "You are not authorized to vote. Please get authorized first.",
            details={"address": address},
        )
        self.address = address


class AlreadyVoted(PreconditionFailed):
    """Voter has already cast a vote in the current registration."""

    def __init__(self, address: str):
        super().__init__("You have already voted.", details={"address": address})
        self.address = address


class TransactionConflict(VotingError):
    """
    Optimistic concurrency failure reported by the store.

    Examples:
        - Serialization failure
        - Deadlock detected

    Safe to retry the whole operation.
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "Concurrent update conflict", operation: Optional[str] = None):
        details = {"operation": operation} if operation else None
        super().__init__(message, details=details)


class StoreUnavailable(VotingError):
    """
    Transient infrastructure failure.

    Examples:
        - Database connection refused or dropped
        - Connection pool exhausted
        - Store file unreadable (I/O error)
    """

    kind = ErrorKind.UNAVAILABLE

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        details = {}
        if backend:
            details["backend"] = backend
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details)


class StoreCorrupted(VotingError):
    """
    Stored data cannot be decoded into voters and candidates.

    Not retryable: the same bytes fail the same way until repaired.
    """

    kind = ErrorKind.CORRUPTED

    def __init__(self, message: str, backend: Optional[str] = None, location: Optional[str] = None):
        details = {}
        if backend:
            details["backend"] = backend
        if location:
            details["location"] = location
        super().__init__(message, details=details)


class OperationCancelled(VotingError):
    """The caller's cancellation signal fired before the operation committed."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Operation cancelled", operation: Optional[str] = None):
        details = {"operation": operation} if operation else None
        super().__init__(message, details=details)


class DeadlineExceeded(OperationCancelled):
    """The caller's deadline expired before the operation committed."""

    def __init__(self, operation: Optional[str] = None):
        super().__init__("Deadline exceeded", operation=operation)
