"""
Voting engine.

Casting a vote is a check-then-act sequence:

1. Eligibility read: the voter must exist, be authorized and not have
   voted yet.
2. Atomic mutation: one transaction increments the candidate's
   ``vote_count`` and flips the voter's ``voted`` flag. Either both
   commit or neither does.
3. The flip in step 2 is a compare-and-set on ``voted = FALSE``, so a
   concurrent cast that slipped in after step 1 makes this one fail with
   AlreadyVoted instead of counting twice.
"""

from __future__ import annotations

from typing import Optional

from .exceptions import AlreadyVoted, NotAuthorized, VoterNotFound, VotingError
from .ledger import CandidateLedger, validate_candidate_id
from .logger import get_logger
from .models import Voter
from .registry import VoterRegistry, normalize_address
from .utils import Deadline, timed_operation

logger = get_logger(__name__)


class VotingEngine:
    """Enforces eligibility and applies votes atomically."""

    def __init__(self, registry: VoterRegistry, ledger: CandidateLedger):
        if registry.store is not ledger.store:
            raise ValueError("Registry and ledger must share one store")
        self.registry = registry
        self.ledger = ledger
        self.store = registry.store

    def cast_vote(self, address: str, candidate_id: int, deadline: Optional[Deadline] = None) -> None:
        """
        Cast one vote for ``candidate_id`` on behalf of ``address``.

        Raises:
            InvalidArgument: blank address or malformed candidate id
            VoterNotFound: address was never registered
            NotAuthorized: voter is not authorized
            AlreadyVoted: voter already voted (possibly in a concurrent call)
            CandidateNotFound: no such candidate; nothing is written
            TransactionConflict: store reported a concurrency failure
            StoreUnavailable: transient store failure
            OperationCancelled: deadline expired or caller cancelled
        """
        address = normalize_address(address)
        validate_candidate_id(candidate_id)

        try:
            with timed_operation(f"cast_vote {address} -> {candidate_id}", logger):
                self._check_eligibility(address, deadline)
                self._commit_vote(address, candidate_id, deadline)
        except VotingError as e:
            logger.warning(f"Vote rejected for {address}: {type(e).__name__}: {e.message}")
            raise

        logger.info(f"Vote recorded for {address} -> candidate {candidate_id}")

    def _check_eligibility(self, address: str, deadline: Optional[Deadline] = None) -> Voter:
        with self.store.transaction(deadline) as session:
            voter = session.get_voter(address)
        if voter is None:
            raise VoterNotFound(address)
        if not voter.authorized:
            raise NotAuthorized(address)
        if voter.voted:
            raise AlreadyVoted(address)
        return voter

    def _commit_vote(self, address: str, candidate_id: int, deadline: Optional[Deadline] = None) -> None:
        with self.store.transaction(deadline) as session:
            self.ledger.increment(candidate_id, session=session)
            self.registry.mark_voted(session, address, candidate_id)
