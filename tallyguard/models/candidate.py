"""
Candidate data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, NamedTuple

from .voter import utcnow


@dataclass
class Candidate:
    """
    An option voters can vote for, with its cumulative tally.

    ``id`` is assigned by the store. ``vote_count`` is only ever changed by
    the store's atomic increment.
    """

    id: int
    name: str
    vote_count: int = 0
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Candidate":
        """Create Candidate from dictionary."""
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if isinstance(values.get("created_at"), str):
            values["created_at"] = datetime.fromisoformat(values["created_at"])
        return cls(**values)


class TallyEntry(NamedTuple):
    """One line of the results: candidate name and committed vote count."""
    name: str
    vote_count: int
