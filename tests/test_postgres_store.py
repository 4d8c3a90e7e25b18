import os
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg2
import psycopg2.errors
import pytest
from psycopg2.pool import PoolError

from tallyguard import (
    AlreadyVoted,
    Deadline,
    DeadlineExceeded,
    InvalidArgument,
    NotAuthorized,
    StoreUnavailable,
    TransactionConflict,
    VotingSystem,
)
from tallyguard.config import DBConfig
from tallyguard.exceptions import ConfigurationError
from tallyguard.persistence.postgres import PostgresStore, translate_error

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_store(rowcounts=None, voter_row=None):
    """PostgresStore over a mocked pool; rowcounts maps SQL fragments to rowcount."""
    rowcounts = rowcounts or {}
    cur = MagicMock()
    cur.fetchone.return_value = voter_row

    def execute(query, params=()):
        for fragment, count in rowcounts.items():
            if fragment in query:
                if isinstance(count, Exception):
                    raise count
                cur.rowcount = count
                return

    cur.execute.side_effect = execute

    conn = MagicMock()
    conn.closed = 0
    conn.cursor.return_value.__enter__.return_value = cur

    pool = MagicMock()
    pool.getconn.return_value = conn

    return PostgresStore(DBConfig(), pool=pool), pool, conn, cur


def executed_sql(cur):
    return [c.args[0] for c in cur.execute.call_args_list]


def test_translate_error_taxonomy():
    assert isinstance(translate_error(psycopg2.errors.SerializationFailure("x")), TransactionConflict)
    assert isinstance(translate_error(psycopg2.errors.DeadlockDetected("x")), TransactionConflict)
    assert isinstance(translate_error(psycopg2.errors.QueryCanceled("x")), DeadlineExceeded)
    assert isinstance(translate_error(psycopg2.OperationalError("x")), StoreUnavailable)
    assert isinstance(translate_error(psycopg2.InterfaceError("x")), StoreUnavailable)
    assert isinstance(translate_error(psycopg2.DataError("x")), InvalidArgument)

    programming = psycopg2.ProgrammingError("x")
    assert translate_error(programming) is programming


def test_cast_vote_uses_atomic_increment_and_compare_and_set():
    row = ("0xA", True, False, -1, NOW)
    store, pool, conn, cur = make_store(
        {"vote_count + 1": 1, "SET voted = TRUE": 1},
        voter_row=row,
    )
    system = VotingSystem(store)

    system.engine.cast_vote("0xA", 1)

    sql = executed_sql(cur)
    assert "FROM voters WHERE address" in sql[0]
    assert "vote_count = vote_count + 1" in sql[1]
    assert "voted = FALSE AND authorized = TRUE" in sql[2]
    assert conn.commit.call_count == 2
    conn.rollback.assert_not_called()
    assert pool.putconn.call_count == 2


def test_lost_compare_and_set_rolls_back_increment():
    row = ("0xA", True, False, -1, NOW)
    store, pool, conn, cur = make_store({"vote_count + 1": 1, "SET voted = TRUE": 0}, voter_row=row)
    system = VotingSystem(store)

    # The re-read after the missed write sees the winner's committed vote
    cur.fetchone.side_effect = [row, ("0xA", True, True, 2, NOW)]

    with pytest.raises(AlreadyVoted):
        system.engine.cast_vote("0xA", 1)

    assert conn.commit.call_count == 1  # eligibility read only
    conn.rollback.assert_called_once()


def test_missed_compare_and_set_reread_locks_row():
    row = ("0xA", True, False, -1, NOW)
    store, pool, conn, cur = make_store({"vote_count + 1": 1, "SET voted = TRUE": 0}, voter_row=row)
    cur.fetchone.side_effect = [row, ("0xA", False, False, -1, NOW)]

    with pytest.raises(NotAuthorized):
        VotingSystem(store).engine.cast_vote("0xA", 1)

    reread = executed_sql(cur)[-1]
    assert "FROM voters WHERE address" in reread
    assert reread.rstrip().endswith("FOR UPDATE")
    assert "FOR UPDATE" not in executed_sql(cur)[0]


def test_nul_characters_never_reach_the_driver():
    store, pool, conn, cur = make_store()
    system = VotingSystem(store)

    assert system.add_candidate("Ali\x00ce").error == "InvalidArgument"
    assert system.register_voter("0x\x00A").error == "InvalidArgument"
    assert system.cast_vote("0x\x00A", 1).error == "InvalidArgument"

    cur.execute.assert_not_called()
    pool.getconn.assert_not_called()


def test_serialization_failure_becomes_conflict():
    row = ("0xA", True, False, -1, NOW)
    store, pool, conn, cur = make_store(
        {"vote_count + 1": psycopg2.errors.SerializationFailure("could not serialize access")},
        voter_row=row,
    )

    with pytest.raises(TransactionConflict) as exc:
        VotingSystem(store).engine.cast_vote("0xA", 1)

    assert exc.value.recoverable
    conn.rollback.assert_called_once()
    pool.putconn.assert_called_with(conn, close=False)


def test_dropped_connection_is_discarded():
    store, pool, conn, cur = make_store()

    def close_on_error(*args, **kwargs):
        conn.closed = 2
        raise psycopg2.OperationalError("server closed")

    cur.execute.side_effect = close_on_error

    with pytest.raises(StoreUnavailable):
        VotingSystem(store).registry.register("0xA")

    pool.putconn.assert_called_with(conn, close=True)


def test_deadline_sets_statement_timeout():
    store, pool, conn, cur = make_store()

    with store.transaction(Deadline.after(2.0)) as session:
        session.list_candidates()

    first_sql, first_params = cur.execute.call_args_list[0].args
    assert first_sql.startswith("SET LOCAL statement_timeout")
    assert 0 < first_params[0] <= 2000


def test_exhausted_pool_is_unavailable():
    store, pool, conn, cur = make_store()
    pool.getconn.side_effect = PoolError("connection pool exhausted")

    with pytest.raises(StoreUnavailable):
        with store.transaction():
            pass


def test_unconfigured_database_is_a_configuration_error():
    store = PostgresStore(DBConfig(host="", name="", user=""))
    with pytest.raises(ConfigurationError):
        with store.transaction():
            pass


# --- Live database -------------------------------------------------------

live = pytest.mark.skipif(not os.getenv("TEST_DB_HOST"), reason="TEST_DB_HOST not set")


@pytest.fixture
def live_system():
    config = DBConfig(
        host=os.getenv("TEST_DB_HOST", ""),
        port=int(os.getenv("TEST_DB_PORT", "5432")),
        name=os.getenv("TEST_DB_NAME", "voting_system"),
        user=os.getenv("TEST_DB_USER", "postgres"),
        password=os.getenv("TEST_DB_PASSWORD", ""),
        pool_max=20,
    )
    store = PostgresStore(config)
    store.init_schema()
    with store.transaction() as session:
        session.cur.execute("TRUNCATE voters, candidates RESTART IDENTITY")
    system = VotingSystem(store)
    yield system
    store.close()


@pytest.mark.postgres
@live
def test_live_scenario(live_system):
    system = live_system
    system.registry.register("0xA")
    system.registry.authorize("0xA")
    alice = system.ledger.add("Alice")
    bob = system.ledger.add("Bob")

    system.engine.cast_vote("0xA", alice)
    with pytest.raises(AlreadyVoted):
        system.engine.cast_vote("0xA", bob)

    assert system.reporter.tally() == [("Alice", 1), ("Bob", 0)]


@pytest.mark.postgres
@live
def test_live_concurrent_casts(live_system):
    system = live_system
    alice = system.ledger.add("Alice")
    bob = system.ledger.add("Bob")
    system.registry.register("0xC")
    system.registry.authorize("0xC")

    barrier = threading.Barrier(8)
    outcomes = []

    def cast(candidate_id):
        barrier.wait()
        try:
            system.engine.cast_vote("0xC", candidate_id)
            outcomes.append("ok")
        except (AlreadyVoted, TransactionConflict) as e:
            outcomes.append(type(e).__name__)

    threads = [threading.Thread(target=cast, args=(alice if i % 2 else bob,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert system.reporter.total_votes() == 1
