"""
Candidate ledger.

Candidates are created once, never renamed or deleted. Their
``vote_count`` only moves through ``increment``.
"""

from __future__ import annotations

from typing import Any, List, Optional

from .exceptions import CandidateNotFound, InvalidArgument
from .logger import get_logger
from .models import Candidate, utcnow
from .persistence import StoreSession, VotingStore
from .utils import Deadline

logger = get_logger(__name__)


def validate_candidate_id(candidate_id: Any) -> int:
    """Candidate ids are positive integers assigned by the store."""
    if isinstance(candidate_id, bool) or not isinstance(candidate_id, int) or candidate_id < 1:
        raise InvalidArgument(
            "Candidate id must be a positive integer",
            field_name="candidate_id",
            field_value=candidate_id,
        )
    return candidate_id


class CandidateLedger:
    """Candidate identities and their cumulative vote counts."""

    def __init__(self, store: VotingStore):
        self.store = store

    def add(self, name: str, deadline: Optional[Deadline] = None) -> int:
        """
        Create a candidate with zero votes.

        Returns:
            The store-assigned candidate id
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgument("Candidate name must not be empty", field_name="name", field_value=name)
        if "\x00" in name:
            raise InvalidArgument("Candidate name must not contain NUL characters", field_name="name", field_value=name)
        with self.store.transaction(deadline) as session:
            candidate = session.insert_candidate(name.strip(), utcnow())
        logger.info(f"Added candidate {candidate.name!r} (id={candidate.id})")
        return candidate.id

    def increment(
        self,
        candidate_id: int,
        session: Optional[StoreSession] = None,
        deadline: Optional[Deadline] = None,
    ) -> None:
        """
        Atomically add one vote to a candidate.

        Args:
            candidate_id: Candidate to increment
            session: Enclosing transaction; a new one is opened when omitted
            deadline: Used only when opening a new transaction
        """
        validate_candidate_id(candidate_id)
        if session is None:
            with self.store.transaction(deadline) as own_session:
                self._increment(own_session, candidate_id)
        else:
            self._increment(session, candidate_id)

    @staticmethod
    def _increment(session: StoreSession, candidate_id: int) -> None:
        if not session.increment_vote_count(candidate_id):
            raise CandidateNotFound(candidate_id)

    def get(self, candidate_id: int, deadline: Optional[Deadline] = None) -> Candidate:
        validate_candidate_id(candidate_id)
        with self.store.transaction(deadline) as session:
            candidate = session.get_candidate(candidate_id)
        if candidate is None:
            raise CandidateNotFound(candidate_id)
        return candidate

    def list_all(self, deadline: Optional[Deadline] = None) -> List[Candidate]:
        """Snapshot of all candidates ordered by id."""
        with self.store.transaction(deadline) as session:
            return session.list_candidates()
