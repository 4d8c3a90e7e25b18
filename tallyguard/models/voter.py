"""
Voter data models.

Represents a registered voter and its eligibility state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, NamedTuple


# Sentinel stored in ``Voter.vote`` until a vote is cast.
NO_VOTE = -1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Voter:
    """
    A voter identity and its one-shot voting state.

    ``authorized`` and ``voted`` only move from False to True; registering
    the same address again is the only way to reset them.
    """

    address: str
    authorized: bool = False
    voted: bool = False
    vote: int = NO_VOTE
    registered_at: datetime = field(default_factory=utcnow)

    @property
    def can_vote(self) -> bool:
        return self.authorized and not self.voted

    @property
    def status(self) -> "VoterStatus":
        return VoterStatus(authorized=self.authorized, voted=self.voted)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["registered_at"] = self.registered_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Voter":
        """Create Voter from dictionary."""
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if isinstance(values.get("registered_at"), str):
            values["registered_at"] = datetime.fromisoformat(values["registered_at"])
        return cls(**values)


class VoterStatus(NamedTuple):
    """Read-only eligibility projection of a voter."""
    authorized: bool
    voted: bool
