"""
Store abstraction consumed by the voting core.

Defines the transactional interface that concrete stores (in-memory, JSON
file, PostgreSQL) implement. The core never touches a connection directly:
every read and write goes through a StoreSession obtained from
``VotingStore.transaction()``, which commits on clean exit and rolls back on
any exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import ContextManager, List, Optional

from ..models import Candidate, Voter
from ..utils import Deadline


class StoreSession(ABC):
    """
    Parameterized operations available inside one transaction.

    Implementations must make every method part of the enclosing
    transaction so that a rollback undoes all of them together.
    """

    @abstractmethod
    def get_voter(self, address: str, for_update: bool = False) -> Optional[Voter]:
        """
        Read a voter row.

        Args:
            address: Voter address (primary key)
            for_update: Lock the row until the transaction ends

        Returns:
            Voter if registered, None otherwise
        """

    @abstractmethod
    def upsert_voter(self, address: str, registered_at: datetime) -> None:
        """Insert the voter, or reset an existing one to the unregistered-vote state."""

    @abstractmethod
    def authorize_voter(self, address: str) -> bool:
        """
        Set ``authorized`` for an existing voter.

        Returns:
            True if a voter row matched the address
        """

    @abstractmethod
    def mark_voted_if_eligible(self, address: str, candidate_id: int) -> bool:
        """
        Compare-and-set ``voted`` from False to True and record the vote.

        The write only applies while the row is still authorized and not yet
        voted.

        Returns:
            True if exactly one row was updated
        """

    @abstractmethod
    def insert_candidate(self, name: str, created_at: datetime) -> Candidate:
        """Create a candidate with zero votes and return it with its new id."""

    @abstractmethod
    def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        """Read a candidate row, None if absent."""

    @abstractmethod
    def increment_vote_count(self, candidate_id: int) -> bool:
        """
        Atomically add one to a candidate's ``vote_count``.

        Returns:
            True if the candidate exists and was incremented
        """

    @abstractmethod
    def list_candidates(self) -> List[Candidate]:
        """All candidates ordered by id."""


class VotingStore(ABC):
    """
    Abstract persistent store for voters and candidates.

    Implementations can keep state in memory, in a JSON file, in
    PostgreSQL, etc. The only guarantees the core relies on are atomicity
    and isolation of ``transaction()``.
    """

    backend: str = "abstract"

    @abstractmethod
    def transaction(self, deadline: Optional[Deadline] = None) -> ContextManager[StoreSession]:
        """
        Begin a transaction.

        Commits when the block exits normally and rolls back when it raises.
        An expired or cancelled deadline rolls back and raises
        OperationCancelled / DeadlineExceeded.
        """

    def init_schema(self) -> None:
        """Create backing tables or files if they do not exist yet."""

    def close(self) -> None:
        """Release connections and file handles."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
