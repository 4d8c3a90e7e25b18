"""
Data models for the voting core.

These models are plain dataclasses, serializable to JSON and mappable to the
``voters`` and ``candidates`` SQL tables.
"""

from .voter import Voter, VoterStatus, NO_VOTE, utcnow
from .candidate import Candidate, TallyEntry
from .result import OperationResult

__all__ = [
    # Voter models
    "Voter",
    "VoterStatus",
    "NO_VOTE",
    "utcnow",

    # Candidate models
    "Candidate",
    "TallyEntry",

    # Results
    "OperationResult",
]
