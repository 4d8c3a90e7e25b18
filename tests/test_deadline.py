import threading
import time

import pytest

from tallyguard import Deadline, DeadlineExceeded, OperationCancelled, VoterRegistry
from tallyguard.persistence import MemoryStore


def test_deadline_without_expiry_never_expires():
    deadline = Deadline()
    assert deadline.remaining() is None
    deadline.check()


def test_deadline_after_counts_down():
    deadline = Deadline.after(10)
    assert 0 < deadline.remaining() <= 10
    assert not deadline.expired


def test_expired_deadline_raises():
    deadline = Deadline.after(-0.1)
    assert deadline.remaining() == 0.0
    with pytest.raises(DeadlineExceeded):
        deadline.check("cast_vote")


def test_cancel_event_takes_priority():
    cancel = threading.Event()
    deadline = Deadline.after(-1, cancel_event=cancel)
    cancel.set()

    with pytest.raises(OperationCancelled) as exc:
        deadline.check("cast_vote")
    assert not isinstance(exc.value, DeadlineExceeded)
    assert exc.value.details == {"operation": "cast_vote"}


def test_lock_wait_is_bounded_by_deadline():
    store = MemoryStore()
    registry = VoterRegistry(store)
    entered = threading.Event()
    release = threading.Event()

    def hold_transaction():
        with store.transaction():
            entered.set()
            release.wait(5)

    holder = threading.Thread(target=hold_transaction)
    holder.start()
    try:
        assert entered.wait(5)
        started = time.monotonic()
        with pytest.raises(DeadlineExceeded):
            registry.register("0xA", deadline=Deadline.after(0.05))
        assert time.monotonic() - started < 2
    finally:
        release.set()
        holder.join()

    registry.register("0xA")
    assert registry.get_status("0xA") == (False, False)
