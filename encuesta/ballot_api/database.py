"""PostgreSQL store backed by an asyncpg connection pool."""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

import asyncpg

from ..shared import (
    BallotEntry,
    Candidate,
    Office,
    Participant,
    ParticipantProfile,
    StorageUnavailableError,
    Vote,
)
from .store import Store, StoreTransaction

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS offices (
        id SERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS candidates (
        id SERIAL PRIMARY KEY,
        office_id INTEGER NOT NULL REFERENCES offices(id),
        name TEXT NOT NULL,
        rank INTEGER
    );

    CREATE TABLE IF NOT EXISTS participants (
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT,
        surname TEXT,
        age INTEGER,
        gender TEXT,
        sector TEXT,
        has_voted BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS votes (
        id SERIAL PRIMARY KEY,
        participant_id INTEGER NOT NULL REFERENCES participants(id),
        office_id INTEGER NOT NULL REFERENCES offices(id),
        candidate_id INTEGER NOT NULL REFERENCES candidates(id),
        cast_at TIMESTAMPTZ NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_votes_office_candidate
        ON votes (office_id, candidate_id);
"""

# Errors a caller may retry: timeouts, lost connections, serialization conflicts
RETRYABLE_ERRORS = (
    asyncio.TimeoutError,
    OSError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.QueryCanceledError,
    asyncpg.exceptions.TooManyConnectionsError,
)

PARTICIPANT_COLUMNS = "id, email, name, surname, age, gender, sector, has_voted, created_at"


def _participant_from_row(row) -> Participant:
    return Participant(
        id=row["id"],
        email=row["email"],
        profile=ParticipantProfile(
            name=row["name"],
            surname=row["surname"],
            age=row["age"],
            gender=row["gender"],
            sector=row["sector"]
        ),
        has_voted=row["has_voted"],
        created_at=row["created_at"]
    )


class PostgresTransaction(StoreTransaction):
    """Store operations bound to one connection inside an open transaction."""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def count_offices(self) -> int:
        return await self.conn.fetchval("SELECT COUNT(*) FROM offices")

    async def lock_catalog(self) -> None:
        await self.conn.execute("LOCK TABLE offices IN SHARE ROW EXCLUSIVE MODE")

    async def insert_office(self, name: str) -> Office:
        row = await self.conn.fetchrow(
            "INSERT INTO offices (name) VALUES ($1) RETURNING id, name",
            name
        )
        return Office(id=row["id"], name=row["name"])

    async def insert_candidate(self, office_id: int, name: str, rank: Optional[int]) -> Candidate:
        row = await self.conn.fetchrow(
            """
                INSERT INTO candidates (office_id, name, rank)
                VALUES ($1, $2, $3)
                RETURNING id, office_id, name, rank
            """,
            office_id, name, rank
        )
        return Candidate(**dict(row))

    async def fetch_offices(self) -> List[Office]:
        rows = await self.conn.fetch("SELECT id, name FROM offices ORDER BY id")
        return [Office(id=row["id"], name=row["name"]) for row in rows]

    async def fetch_candidates(self) -> List[Candidate]:
        rows = await self.conn.fetch(
            "SELECT id, office_id, name, rank FROM candidates ORDER BY id"
        )
        return [Candidate(**dict(row)) for row in rows]

    async def insert_participant(self, email: str, profile: ParticipantProfile) -> Optional[Participant]:
        query = f"""
            INSERT INTO participants (email, name, surname, age, gender, sector)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (email) DO NOTHING
            RETURNING {PARTICIPANT_COLUMNS}
        """
        row = await self.conn.fetchrow(
            query,
            email, profile.name, profile.surname, profile.age, profile.gender, profile.sector
        )
        return _participant_from_row(row) if row else None

    async def fetch_participant(self, email: str, for_update: bool = False) -> Optional[Participant]:
        query = f"SELECT {PARTICIPANT_COLUMNS} FROM participants WHERE email = $1"
        if for_update:
            query += " FOR UPDATE"
        row = await self.conn.fetchrow(query, email)
        return _participant_from_row(row) if row else None

    async def fetch_participants(self) -> List[Participant]:
        rows = await self.conn.fetch(
            f"SELECT {PARTICIPANT_COLUMNS} FROM participants ORDER BY id"
        )
        return [_participant_from_row(row) for row in rows]

    async def set_has_voted(self, participant_id: int) -> bool:
        status = await self.conn.execute(
            "UPDATE participants SET has_voted = TRUE WHERE id = $1 AND NOT has_voted",
            participant_id
        )
        # Command tag is "UPDATE <rows>"
        return status.split()[-1] == "1"

    async def insert_votes(
        self,
        participant_id: int,
        entries: Sequence[BallotEntry],
        cast_at: datetime
    ) -> List[Vote]:
        query = """
            INSERT INTO votes (participant_id, office_id, candidate_id, cast_at)
            VALUES ($1, $2, $3, $4)
            RETURNING id, participant_id, office_id, candidate_id, cast_at
        """
        votes = []
        for entry in entries:
            row = await self.conn.fetchrow(
                query, participant_id, entry.office_id, entry.candidate_id, cast_at
            )
            votes.append(Vote(**dict(row)))
        return votes

    async def count_votes(self) -> Dict[Tuple[int, int], int]:
        rows = await self.conn.fetch(
            """
                SELECT office_id, candidate_id, COUNT(*) AS votes
                FROM votes
                GROUP BY office_id, candidate_id
            """
        )
        return {(row["office_id"], row["candidate_id"]): row["votes"] for row in rows}


class PostgresStore(Store):
    """Async PostgreSQL store."""

    def __init__(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 5.0
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self) -> None:
        """Initialize the connection pool and create missing tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.timeout
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            async with self.pool.acquire(timeout=self.timeout) as conn:
                await conn.execute(SCHEMA_SQL)
                logger.info("PostgreSQL schema verified")

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL store: {e}")
            raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresTransaction]:
        if self.pool is None:
            raise StorageUnavailableError("PostgreSQL pool is not initialized")

        try:
            async with self.pool.acquire(timeout=self.timeout) as conn:
                async with conn.transaction():
                    yield PostgresTransaction(conn)
        except RETRYABLE_ERRORS as e:
            logger.error(f"PostgreSQL store unavailable: {e!r}")
            raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    async def check_health(self) -> bool:
        """
        Check PostgreSQL connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            if not self.pool:
                return False
            async with self.pool.acquire(timeout=self.timeout) as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")
