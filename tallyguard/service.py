"""
Caller-facing voting API.

VotingSystem wires the registry, ledger, engine and reporter around one
injected store and turns domain errors into explicit OperationResult values.
Transient failures (CONFLICT, UNAVAILABLE) are retried from scratch up to
``VOTING_MAX_RETRIES`` times.

Usage:
    from tallyguard import VotingSystem
    from tallyguard.persistence import MemoryStore

    system = VotingSystem(MemoryStore())
    alice = system.add_candidate("Alice").data
    system.register_voter("0xA")
    system.authorize_voter("0xA")
    result = system.cast_vote("0xA", alice)
    if not result.success:
        print(result.error_kind, result.message)
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional

from .config import Config, get_config
from .engine import VotingEngine
from .exceptions import VotingError
from .ledger import CandidateLedger
from .logger import get_logger, log_timing
from .models import Candidate, OperationResult, TallyEntry
from .persistence import VotingStore, create_store
from .registry import VoterRegistry
from .reporter import ResultReporter
from .utils import Deadline, Timer

logger = get_logger(__name__)


class VotingSystem:
    """One election: its store, its components and its retry policy."""

    def __init__(
        self,
        store: VotingStore,
        config: Optional[Config] = None,
        election_name: Optional[str] = None,
        owner: Optional[str] = None,
    ):
        self.config = config or get_config()
        self.store = store
        self.election_name = election_name or self.config.election_name
        self.owner = owner or self.config.owner

        self.registry = VoterRegistry(store, strict_authorize=self.config.voting.strict_authorize)
        self.ledger = CandidateLedger(store)
        self.engine = VotingEngine(self.registry, self.ledger)
        self.reporter = ResultReporter(self.ledger)
        self.timer = Timer()

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "VotingSystem":
        """Build the store selected by configuration and wrap it."""
        config = config or get_config()
        return cls(create_store(config), config)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.store.close()

    def _deadline(self, deadline: Optional[Deadline]) -> Optional[Deadline]:
        timeout = self.config.voting.default_timeout_sec
        if deadline is None and timeout > 0:
            return Deadline.after(timeout)
        return deadline

    def _run(
        self,
        operation: str,
        func: Callable[..., Any],
        *args: Any,
        deadline: Optional[Deadline] = None,
        retry: bool = True,
    ) -> OperationResult:
        """Run ``func`` and convert its outcome, retrying transient errors."""
        deadline = self._deadline(deadline)
        max_attempts = 1 + (max(0, self.config.voting.max_retries) if retry else 0)
        start = time.perf_counter()

        for attempt in range(1, max_attempts + 1):
            try:
                data = func(*args, deadline=deadline)
            except VotingError as e:
                out_of_time = deadline is not None and (deadline.expired or deadline.cancelled)
                if e.recoverable and attempt < max_attempts and not out_of_time:
                    logger.info(
                        f"Retrying {operation} after {type(e).__name__} "
                        f"(attempt {attempt + 1}/{max_attempts})"
                    )
                    self._sleep_before_retry(deadline)
                    continue
                return OperationResult.failure(e, timing_sec=time.perf_counter() - start, attempts=attempt)

            elapsed = time.perf_counter() - start
            log_timing(logger, operation, elapsed)
            self.timer.record(operation, elapsed)
            return OperationResult.ok(data=data, timing_sec=elapsed, attempts=attempt)

        raise AssertionError("unreachable")

    def _sleep_before_retry(self, deadline: Optional[Deadline]) -> None:
        delay = self.config.voting.retry_delay_sec
        remaining = deadline.remaining() if deadline is not None else None
        if remaining is not None:
            delay = min(delay, remaining)
        if delay > 0:
            time.sleep(delay)

    # --- Writes ---

    def add_candidate(self, name: str, deadline: Optional[Deadline] = None) -> OperationResult:
        """Create a candidate; ``data`` holds the new id."""
        # A retried insert could create a duplicate candidate.
        return self._run("add_candidate", self.ledger.add, name, deadline=deadline, retry=False)

    def register_voter(self, address: str, deadline: Optional[Deadline] = None) -> OperationResult:
        return self._run("register_voter", self.registry.register, address, deadline=deadline)

    def authorize_voter(self, address: str, deadline: Optional[Deadline] = None) -> OperationResult:
        return self._run("authorize_voter", self.registry.authorize, address, deadline=deadline)

    def cast_vote(self, address: str, candidate_id: int, deadline: Optional[Deadline] = None) -> OperationResult:
        return self._run("cast_vote", self.engine.cast_vote, address, candidate_id, deadline=deadline)

    # --- Reads ---

    def voter_status(self, address: str, deadline: Optional[Deadline] = None) -> OperationResult:
        """``data`` holds a VoterStatus(authorized, voted)."""
        return self._run("voter_status", self.registry.get_status, address, deadline=deadline)

    def list_candidates(self, deadline: Optional[Deadline] = None) -> List[Candidate]:
        return self.ledger.list_all(self._deadline(deadline))

    def tally(self, deadline: Optional[Deadline] = None) -> List[TallyEntry]:
        return self.reporter.tally(self._deadline(deadline))

    def results_text(self, deadline: Optional[Deadline] = None) -> str:
        return self.reporter.results_text(self._deadline(deadline))
