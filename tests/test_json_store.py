import json
import os

import pytest
from conftest import make_config

from tallyguard import ErrorKind, StoreCorrupted, VotingSystem
from tallyguard.persistence import JSONFileStore


@pytest.fixture
def path(tmp_path):
    return tmp_path / "data" / "election.json"


def test_state_survives_reopening(path, config):
    system = VotingSystem(JSONFileStore(path), config)
    alice = system.ledger.add("Alice")
    system.registry.register("0xA")
    system.registry.authorize("0xA")
    system.engine.cast_vote("0xA", alice)

    reopened = VotingSystem(JSONFileStore(path), config)

    assert reopened.reporter.tally() == [("Alice", 1)]
    voter = reopened.registry.get_voter("0xA")
    assert (voter.authorized, voter.voted, voter.vote) == (True, True, alice)
    assert voter.registered_at.tzinfo is not None
    assert reopened.ledger.add("Bob") == 2


def test_init_schema_creates_empty_file(path):
    store = JSONFileStore(path)
    store.init_schema()

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"next_candidate_id": 1, "candidates": [], "voters": []}


def test_missing_file_reads_as_empty(path, config):
    system = VotingSystem(JSONFileStore(path), config)
    assert system.reporter.tally() == []
    assert not path.exists()


def test_failed_transaction_does_not_touch_file(path, config):
    system = VotingSystem(JSONFileStore(path), config)
    system.ledger.add("Alice")
    before = path.read_text(encoding="utf-8")

    result = system.cast_vote("0xA", 1)

    assert result.error == "VoterNotFound"
    assert path.read_text(encoding="utf-8") == before


def test_reads_do_not_rewrite_file(path, config):
    system = VotingSystem(JSONFileStore(path), config)
    system.ledger.add("Alice")
    system.registry.register("0xA")
    os.utime(path, ns=(0, 0))

    assert system.reporter.tally() == [("Alice", 0)]
    assert [c.name for c in system.list_candidates()] == ["Alice"]
    assert system.registry.get_status("0xA") == (False, False)
    # Rejected vote: eligibility read only
    assert system.cast_vote("0xA", 1).error == "NotAuthorized"

    assert path.stat().st_mtime_ns == 0


def test_reads_succeed_when_file_cannot_be_written(path, config, monkeypatch):
    system = VotingSystem(JSONFileStore(path), config)
    system.ledger.add("Alice")

    def refuse(*args, **kwargs):
        raise PermissionError("read-only file system")

    monkeypatch.setattr(os, "replace", refuse)

    assert system.reporter.tally() == [("Alice", 0)]
    assert not system.add_candidate("Bob").success


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"voters": [{"authorized": true}]}',
        '{"candidates": ["Alice"]}',
        '{"next_candidate_id": "two"}',
    ],
)
def test_corrupt_file_is_not_retryable(path, config, content):
    path.parent.mkdir(parents=True)
    path.write_text(content, encoding="utf-8")
    system = VotingSystem(JSONFileStore(path), config)

    with pytest.raises(StoreCorrupted) as exc:
        system.reporter.tally()
    assert exc.value.kind == ErrorKind.CORRUPTED
    assert not exc.value.recoverable
    assert exc.value.details["location"] == str(path)


def test_corrupt_file_fails_without_retry(path, tmp_path):
    path.parent.mkdir(parents=True)
    path.write_text("[]", encoding="utf-8")
    system = VotingSystem(JSONFileStore(path), make_config(tmp_path, max_retries=3))

    result = system.register_voter("0xA")

    assert result.error == "StoreCorrupted"
    assert result.attempts == 1
    assert not result.retryable
