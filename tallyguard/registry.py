"""
Voter registry.

Tracks each voter's authorization and voted status. The only write that
sets ``voted`` is ``mark_voted``, which the voting engine calls inside its
own transaction.
"""

from __future__ import annotations

from typing import Optional

from .exceptions import AlreadyVoted, InvalidArgument, NotAuthorized, VoterNotFound
from .logger import get_logger
from .models import Voter, VoterStatus, utcnow
from .persistence import StoreSession, VotingStore
from .utils import Deadline

logger = get_logger(__name__)


def normalize_address(address: str) -> str:
    """Strip surrounding whitespace and reject empty addresses."""
    if not isinstance(address, str) or not address.strip():
        raise InvalidArgument("Voter address must be a non-empty string", field_name="address", field_value=address)
    if "\x00" in address:
        raise InvalidArgument("Voter address must not contain NUL characters", field_name="address", field_value=address)
    return address.strip()


class VoterRegistry:
    """Registration, authorization and status lookups for voters."""

    def __init__(self, store: VotingStore, strict_authorize: bool = True):
        """
        Args:
            store: Backing store
            strict_authorize: Raise VoterNotFound when authorizing an
                address that was never registered (no-op otherwise)
        """
        self.store = store
        self.strict_authorize = strict_authorize

    def register(self, address: str, deadline: Optional[Deadline] = None) -> None:
        """
        Register a voter, or fully reset an existing registration.

        Re-registering clears ``authorized``, ``voted`` and ``vote`` and
        refreshes ``registered_at``.
        """
        address = normalize_address(address)
        with self.store.transaction(deadline) as session:
            session.upsert_voter(address, utcnow())
        logger.info(f"Registered voter {address}")

    def authorize(self, address: str, deadline: Optional[Deadline] = None) -> None:
        """Grant the right to vote. Idempotent."""
        address = normalize_address(address)
        with self.store.transaction(deadline) as session:
            matched = session.authorize_voter(address)
            if not matched and self.strict_authorize:
                raise VoterNotFound(address)
        if matched:
            logger.info(f"Authorized voter {address}")
        else:
            logger.warning(f"Authorize ignored for unregistered address {address}")

    def get_voter(self, address: str, deadline: Optional[Deadline] = None) -> Voter:
        address = normalize_address(address)
        with self.store.transaction(deadline) as session:
            voter = session.get_voter(address)
        if voter is None:
            raise VoterNotFound(address)
        return voter

    def get_status(self, address: str, deadline: Optional[Deadline] = None) -> VoterStatus:
        return self.get_voter(address, deadline).status

    def mark_voted(self, session: StoreSession, address: str, candidate_id: int) -> None:
        """
        Record the vote inside the caller's transaction.

        Applies only while the voter is still authorized and has not voted.
        When the compare-and-set misses, the row is re-read and locked in
        the same session so the reported reason cannot change before
        rollback.
        """
        if session.mark_voted_if_eligible(address, candidate_id):
            return

        voter = session.get_voter(address, for_update=True)
        if voter is None:
            raise VoterNotFound(address)
        if not voter.authorized:
            raise NotAuthorized(address)
        raise AlreadyVoted(address)
