import pytest

from tallyguard import (
    ErrorKind,
    InvalidArgument,
    NO_VOTE,
    VoterNotFound,
    VoterRegistry,
)


def test_register_creates_unauthorized_voter(system):
    system.registry.register("0xA")

    voter = system.registry.get_voter("0xA")
    assert voter.authorized is False
    assert voter.voted is False
    assert voter.vote == NO_VOTE
    assert system.registry.get_status("0xA") == (False, False)


def test_register_strips_whitespace(system):
    system.registry.register("  0xA  ")
    assert system.registry.get_status("0xA").authorized is False


@pytest.mark.parametrize("address", ["", "   ", None])
def test_register_rejects_blank_address(system, address):
    with pytest.raises(InvalidArgument) as exc:
        system.registry.register(address)
    assert exc.value.kind is ErrorKind.INVALID_ARGUMENT


def test_nul_in_address_is_rejected(system):
    with pytest.raises(InvalidArgument):
        system.registry.register("0x\x00A")

    result = system.cast_vote("0x\x00A", 1)
    assert result.error == "InvalidArgument"


def test_authorize_is_idempotent(system):
    system.registry.register("0xA")
    system.registry.authorize("0xA")
    system.registry.authorize("0xA")

    status = system.registry.get_status("0xA")
    assert status.authorized is True
    assert status.voted is False


def test_re_registration_is_a_full_reset(election):
    system, alice, _ = election
    system.engine.cast_vote("0xA", alice)
    first = system.registry.get_voter("0xA")

    system.registry.register("0xA")

    voter = system.registry.get_voter("0xA")
    assert (voter.authorized, voter.voted, voter.vote) == (False, False, NO_VOTE)
    assert voter.registered_at >= first.registered_at


def test_status_of_unknown_voter_is_not_found(system):
    with pytest.raises(VoterNotFound) as exc:
        system.registry.get_status("0xNobody")
    assert exc.value.kind is ErrorKind.NOT_FOUND
    assert exc.value.details == {"address": "0xNobody"}


def test_authorize_unknown_address_fails_in_strict_mode(system):
    with pytest.raises(VoterNotFound):
        system.registry.authorize("0xNobody")


def test_authorize_unknown_address_is_noop_when_not_strict(store):
    registry = VoterRegistry(store, strict_authorize=False)

    registry.authorize("0xNobody")

    with pytest.raises(VoterNotFound):
        registry.get_status("0xNobody")

    # A later registration starts unauthorized; the earlier authorize left no trace
    registry.register("0xNobody")
    assert registry.get_status("0xNobody").authorized is False
