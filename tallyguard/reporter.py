"""
Result reporter: read-only projection of the candidate ledger.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .ledger import CandidateLedger
from .models import TallyEntry
from .utils import Deadline


def format_results(entries: Iterable[TallyEntry]) -> str:
    """Render one ``"<name>: <count> votes"`` line per candidate."""
    return "".join(f"{entry.name}: {entry.vote_count} votes\n" for entry in entries)


class ResultReporter:
    """Builds tallies from the most recently committed state."""

    def __init__(self, ledger: CandidateLedger):
        self.ledger = ledger

    def tally(self, deadline: Optional[Deadline] = None) -> List[TallyEntry]:
        return [TallyEntry(c.name, c.vote_count) for c in self.ledger.list_all(deadline)]

    def total_votes(self, deadline: Optional[Deadline] = None) -> int:
        return sum(entry.vote_count for entry in self.tally(deadline))

    def results_text(self, deadline: Optional[Deadline] = None) -> str:
        return format_results(self.tally(deadline))
