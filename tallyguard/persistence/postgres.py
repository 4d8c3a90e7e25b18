"""
PostgreSQL store implementation.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

import psycopg2
import psycopg2.errors
from psycopg2.pool import ThreadedConnectionPool, PoolError

from ..config import DBConfig
from ..exceptions import (
    ConfigurationError,
    DeadlineExceeded,
    InvalidArgument,
    StoreUnavailable,
    TransactionConflict,
)
from ..models import Candidate, Voter, NO_VOTE
from ..utils import Deadline, check_deadline
from .store import StoreSession, VotingStore

logger = logging.getLogger(__name__)

VOTER_COLUMNS = "address, authorized, voted, vote, registered_at"
CANDIDATE_COLUMNS = "id, name, vote_count, created_at"


def translate_error(error: psycopg2.Error, operation: Optional[str] = None) -> Exception:
    """
    Map a psycopg2 error onto the voting error taxonomy.

    Serialization failures and deadlocks become TransactionConflict,
    statement timeouts become DeadlineExceeded, connection problems become
    StoreUnavailable and bad values become InvalidArgument. Anything else is
    returned unchanged.
    """
    message = (getattr(error, "pgerror", None) or str(error)).strip()
    if isinstance(error, (psycopg2.errors.SerializationFailure, psycopg2.errors.DeadlockDetected)):
        return TransactionConflict(message or "Concurrent update conflict", operation=operation)
    if isinstance(error, psycopg2.errors.QueryCanceled):
        return DeadlineExceeded(operation=operation)
    if isinstance(error, (psycopg2.OperationalError, psycopg2.InterfaceError)):
        return StoreUnavailable(message or "Database unavailable", backend="postgres", operation=operation)
    if isinstance(error, psycopg2.DataError):
        return InvalidArgument(message or "Invalid value")
    return error


class PostgresSession(StoreSession):
    """Session bound to one cursor of an open transaction."""

    def __init__(self, cur, deadline: Optional[Deadline] = None):
        self.cur = cur
        self._deadline = deadline

    def _execute(self, operation: str, query: str, params: tuple = ()) -> None:
        check_deadline(self._deadline, operation)
        self.cur.execute(query, params)

    @staticmethod
    def _voter_from_row(row) -> Voter:
        address, authorized, voted, vote, registered_at = row
        return Voter(
            address=address,
            authorized=authorized,
            voted=voted,
            vote=vote,
            registered_at=registered_at,
        )

    @staticmethod
    def _candidate_from_row(row) -> Candidate:
        candidate_id, name, vote_count, created_at = row
        return Candidate(id=candidate_id, name=name, vote_count=vote_count, created_at=created_at)

    def get_voter(self, address: str, for_update: bool = False) -> Optional[Voter]:
        query = f"SELECT {VOTER_COLUMNS} FROM voters WHERE address = %s"
        if for_update:
            query += " FOR UPDATE"
        self._execute("get_voter", query, (address,))
        row = self.cur.fetchone()
        return self._voter_from_row(row) if row else None

    def upsert_voter(self, address: str, registered_at: datetime) -> None:
        self._execute(
            "upsert_voter",
            """
            INSERT INTO voters (address, authorized, voted, vote, registered_at)
            VALUES (%s, FALSE, FALSE, %s, %s)
            ON CONFLICT (address) DO UPDATE SET
                authorized = FALSE,
                voted = FALSE,
                vote = EXCLUDED.vote,
                registered_at = EXCLUDED.registered_at
            """,
            (address, NO_VOTE, registered_at),
        )

    def authorize_voter(self, address: str) -> bool:
        self._execute(
            "authorize_voter",
            "UPDATE voters SET authorized = TRUE WHERE address = %s",
            (address,),
        )
        return self.cur.rowcount > 0

    def mark_voted_if_eligible(self, address: str, candidate_id: int) -> bool:
        # The WHERE clause is re-evaluated after any concurrent writer on the
        # same row commits, so only one caller can flip voted.
        self._execute(
            "mark_voted",
            """
            UPDATE voters SET voted = TRUE, vote = %s
            WHERE address = %s AND voted = FALSE AND authorized = TRUE
            """,
            (candidate_id, address),
        )
        return self.cur.rowcount == 1

    def insert_candidate(self, name: str, created_at: datetime) -> Candidate:
        self._execute(
            "insert_candidate",
            f"""
            INSERT INTO candidates (name, vote_count, created_at)
            VALUES (%s, 0, %s)
            RETURNING {CANDIDATE_COLUMNS}
            """,
            (name, created_at),
        )
        return self._candidate_from_row(self.cur.fetchone())

    def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        self._execute(
            "get_candidate",
            f"SELECT {CANDIDATE_COLUMNS} FROM candidates WHERE id = %s",
            (candidate_id,),
        )
        row = self.cur.fetchone()
        return self._candidate_from_row(row) if row else None

    def increment_vote_count(self, candidate_id: int) -> bool:
        self._execute(
            "increment_vote_count",
            "UPDATE candidates SET vote_count = vote_count + 1 WHERE id = %s",
            (candidate_id,),
        )
        return self.cur.rowcount == 1

    def list_candidates(self) -> List[Candidate]:
        self._execute("list_candidates", f"SELECT {CANDIDATE_COLUMNS} FROM candidates ORDER BY id")
        return [self._candidate_from_row(row) for row in self.cur.fetchall()]


class PostgresStore(VotingStore):
    """
    PostgreSQL store for voters and candidates.

    Handles:
    - Connection pooling (one connection per transaction)
    - Schema initialization
    - Error translation into the voting error taxonomy
    """

    backend = "postgres"

    def __init__(self, config: DBConfig, pool: Optional[ThreadedConnectionPool] = None):
        """
        Initialize store.

        Args:
            config: Database configuration
            pool: Pre-built connection pool (created lazily from config otherwise)
        """
        self.config = config
        self._pool = pool

    def _get_pool(self) -> ThreadedConnectionPool:
        """Get or create the connection pool."""
        if self._pool is None:
            if not self.config.is_configured:
                raise ConfigurationError(
                    "PostgreSQL store requires DB_HOST, DB_NAME and DB_USER", config_key="DB_HOST"
                )
            try:
                self._pool = ThreadedConnectionPool(
                    self.config.pool_min,
                    self.config.pool_max,
                    host=self.config.host,
                    port=self.config.port,
                    dbname=self.config.name,
                    user=self.config.user,
                    password=self.config.password,
                    sslmode=self.config.ssl_mode,
                    connect_timeout=self.config.connect_timeout,
                )
            except psycopg2.Error as e:
                logger.error(f"Failed to connect to PostgreSQL: {e}")
                raise translate_error(e, "connect") from e
        return self._pool

    def _acquire(self):
        pool = self._get_pool()
        try:
            conn = pool.getconn()
        except PoolError as e:
            raise StoreUnavailable(f"Connection pool exhausted: {e}", backend=self.backend, operation="begin") from e
        except psycopg2.Error as e:
            raise translate_error(e, "begin") from e
        conn.autocommit = False
        return conn

    def _release(self, conn) -> None:
        self._get_pool().putconn(conn, close=bool(conn.closed))

    @staticmethod
    def _rollback(conn) -> None:
        if conn.closed:
            return
        try:
            conn.rollback()
        except psycopg2.Error as e:
            logger.warning(f"Rollback failed, discarding connection: {e}")

    @contextmanager
    def transaction(self, deadline: Optional[Deadline] = None) -> Iterator[StoreSession]:
        check_deadline(deadline, "begin")
        conn = self._acquire()
        try:
            try:
                with conn.cursor() as cur:
                    remaining = deadline.remaining() if deadline is not None else None
                    if remaining is not None:
                        cur.execute(
                            "SET LOCAL statement_timeout = %s",
                            (max(1, int(remaining * 1000)),),
                        )
                    yield PostgresSession(cur, deadline)
                    check_deadline(deadline, "commit")
                conn.commit()
            except psycopg2.Error as e:
                self._rollback(conn)
                translated = translate_error(e)
                if translated is e:
                    raise
                logger.debug(f"Transaction rolled back: {type(translated).__name__}: {e}")
                raise translated from e
            except BaseException:
                self._rollback(conn)
                raise
        finally:
            self._release(conn)

    def init_schema(self) -> None:
        """Initialize database schema."""
        with self.transaction() as session:
            cur = session.cur
            cur.execute("""
                CREATE TABLE IF NOT EXISTS candidates (
                    id SERIAL PRIMARY KEY,
                    name TEXT NOT NULL CHECK (name <> ''),
                    vote_count INTEGER NOT NULL DEFAULT 0 CHECK (vote_count >= 0),
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
                );
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS voters (
                    address TEXT PRIMARY KEY,
                    authorized BOOLEAN NOT NULL DEFAULT FALSE,
                    voted BOOLEAN NOT NULL DEFAULT FALSE,
                    vote INTEGER NOT NULL DEFAULT -1,
                    registered_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT CURRENT_TIMESTAMP
                );
            """)
            cur.execute("CREATE INDEX IF NOT EXISTS idx_voters_vote ON voters(vote) WHERE voted;")
        logger.info("Database schema initialized")

    def close(self) -> None:
        if self._pool is not None and not self._pool.closed:
            self._pool.closeall()
