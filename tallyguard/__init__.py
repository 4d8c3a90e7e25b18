"""
tallyguard - one-vote-per-voter election core.

Records voter eligibility and tabulates candidate votes on top of a
transactional store.
"""

from .exceptions import (
    ErrorKind,
    VotingError,
    InvalidArgument,
    NotFound,
    VoterNotFound,
    CandidateNotFound,
    PreconditionFailed,
    NotAuthorized,
    AlreadyVoted,
    TransactionConflict,
    StoreUnavailable,
    StoreCorrupted,
    OperationCancelled,
    DeadlineExceeded,
)
from .models import Candidate, Voter, VoterStatus, TallyEntry, OperationResult, NO_VOTE
from .registry import VoterRegistry
from .ledger import CandidateLedger
from .engine import VotingEngine
from .reporter import ResultReporter, format_results
from .service import VotingSystem
from .utils import Deadline

__version__ = "1.0.0"

__all__ = [
    "VotingSystem",
    "VoterRegistry",
    "CandidateLedger",
    "VotingEngine",
    "ResultReporter",
    "format_results",
    "Deadline",

    # Models
    "Candidate",
    "Voter",
    "VoterStatus",
    "TallyEntry",
    "OperationResult",
    "NO_VOTE",

    # Errors
    "ErrorKind",
    "VotingError",
    "InvalidArgument",
    "NotFound",
    "VoterNotFound",
    "CandidateNotFound",
    "PreconditionFailed",
    "NotAuthorized",
    "AlreadyVoted",
    "TransactionConflict",
    "StoreUnavailable",
    "StoreCorrupted",
    "OperationCancelled",
    "DeadlineExceeded",
]
