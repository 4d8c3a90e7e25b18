"""
In-memory store.

Serializes transactions with a store-wide lock and applies writes to a
working copy that replaces the committed state only on commit. Used as the
test double for the core and as the base of the JSON file store.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from ..exceptions import DeadlineExceeded, StoreUnavailable
from ..models import Candidate, NO_VOTE, Voter
from ..utils import Deadline, check_deadline
from .store import StoreSession, VotingStore

logger = logging.getLogger(__name__)


@dataclass
class MemoryState:
    """Committed contents of an in-memory store."""
    voters: Dict[str, Voter] = field(default_factory=dict)
    candidates: Dict[int, Candidate] = field(default_factory=dict)
    next_candidate_id: int = 1

    def copy(self) -> "MemoryState":
        return MemoryState(
            voters={a: replace(v) for a, v in self.voters.items()},
            candidates={i: replace(c) for i, c in self.candidates.items()},
            next_candidate_id=self.next_candidate_id,
        )


class MemorySession(StoreSession):
    """
    Session operating on a private working copy of the state.

    ``dirty`` is set by every write so read-only transactions commit
    without saving.
    """

    def __init__(self, state: MemoryState, deadline: Optional[Deadline] = None):
        self._state = state
        self._deadline = deadline
        self.dirty = False

    def get_voter(self, address: str, for_update: bool = False) -> Optional[Voter]:
        # Transactions already run one at a time; for_update needs no extra lock
        check_deadline(self._deadline, "get_voter")
        voter = self._state.voters.get(address)
        return replace(voter) if voter else None

    def upsert_voter(self, address: str, registered_at: datetime) -> None:
        check_deadline(self._deadline, "upsert_voter")
        self.dirty = True
        self._state.voters[address] = Voter(
            address=address,
            authorized=False,
            voted=False,
            vote=NO_VOTE,
            registered_at=registered_at,
        )

    def authorize_voter(self, address: str) -> bool:
        check_deadline(self._deadline, "authorize_voter")
        voter = self._state.voters.get(address)
        if voter is None:
            return False
        voter.authorized = True
        self.dirty = True
        return True

    def mark_voted_if_eligible(self, address: str, candidate_id: int) -> bool:
        check_deadline(self._deadline, "mark_voted")
        voter = self._state.voters.get(address)
        if voter is None or not voter.can_vote:
            return False
        voter.voted = True
        voter.vote = candidate_id
        self.dirty = True
        return True

    def insert_candidate(self, name: str, created_at: datetime) -> Candidate:
        check_deadline(self._deadline, "insert_candidate")
        candidate = Candidate(
            id=self._state.next_candidate_id,
            name=name,
            vote_count=0,
            created_at=created_at,
        )
        self._state.candidates[candidate.id] = candidate
        self._state.next_candidate_id += 1
        self.dirty = True
        return replace(candidate)

    def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        check_deadline(self._deadline, "get_candidate")
        candidate = self._state.candidates.get(candidate_id)
        return replace(candidate) if candidate else None

    def increment_vote_count(self, candidate_id: int) -> bool:
        check_deadline(self._deadline, "increment_vote_count")
        candidate = self._state.candidates.get(candidate_id)
        if candidate is None:
            return False
        candidate.vote_count += 1
        self.dirty = True
        return True

    def list_candidates(self) -> List[Candidate]:
        check_deadline(self._deadline, "list_candidates")
        return [replace(self._state.candidates[i]) for i in sorted(self._state.candidates)]


class MemoryStore(VotingStore):
    """
    Process-local store with serializable transactions.

    Only one transaction runs at a time; waiting for the lock is bounded by
    the caller's deadline.
    """

    backend = "memory"
    session_class = MemorySession

    def __init__(self):
        self._lock = threading.Lock()
        self._state = MemoryState()
        self._closed = False

    def _load(self) -> MemoryState:
        """Return the committed state (called with the lock held)."""
        return self._state

    def _save(self, state: MemoryState) -> None:
        """Replace the committed state (called with the lock held)."""
        self._state = state

    def _acquire(self, deadline: Optional[Deadline]) -> None:
        remaining = deadline.remaining() if deadline is not None else None
        if remaining is None:
            self._lock.acquire()
        elif not self._lock.acquire(timeout=remaining):
            raise DeadlineExceeded(operation="begin")

    @contextmanager
    def transaction(self, deadline: Optional[Deadline] = None) -> Iterator[StoreSession]:
        if self._closed:
            raise StoreUnavailable("Store is closed", backend=self.backend, operation="begin")
        check_deadline(deadline, "begin")
        self._acquire(deadline)
        try:
            working = self._load().copy()
            session = self.session_class(working, deadline)
            try:
                yield session
                check_deadline(deadline, "commit")
            except BaseException as e:
                logger.debug(f"Rolling back {self.backend} transaction: {type(e).__name__}")
                raise
            if session.dirty:
                self._save(working)
        finally:
            self._lock.release()

    def close(self) -> None:
        self._closed = True
