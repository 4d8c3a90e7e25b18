import pytest

from tallyguard import VotingSystem
from tallyguard.config import Config, VotingConfig
from tallyguard.persistence import MemoryStore


def make_config(tmp_path, **voting):
    voting.setdefault("max_retries", 0)
    voting.setdefault("retry_delay_sec", 0.0)
    voting.setdefault("default_timeout_sec", 0.0)
    voting.setdefault("strict_authorize", True)
    return Config(
        base_dir=tmp_path,
        store_backend="memory",
        election_name="Presidential Election",
        owner="ownerAddress",
        voting=VotingConfig(**voting),
    )


@pytest.fixture
def config(tmp_path):
    return make_config(tmp_path)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def system(store, config):
    return VotingSystem(store, config)


@pytest.fixture
def election(system):
    """Alice (1) and Bob (2), with voter 0xA registered and authorized."""
    alice = system.ledger.add("Alice")
    bob = system.ledger.add("Bob")
    system.registry.register("0xA")
    system.registry.authorize("0xA")
    return system, alice, bob
