"""Pytest fixtures for PostgreSQL integration tests.

These tests need a reachable PostgreSQL, configured with the same POSTGRES_*
variables the service reads. They are skipped when the database is down.
"""

import os
from typing import AsyncGenerator

import pytest

from encuesta.ballot_api import ElectionService
from encuesta.ballot_api.database import PostgresStore


def postgres_dsn() -> str:
    return (
        f"postgresql://{os.getenv('POSTGRES_USER', 'encuesta_user')}"
        f":{os.getenv('POSTGRES_PASSWORD', 'encuesta_pass')}"
        f"@{os.getenv('POSTGRES_HOST', 'localhost')}"
        f":{os.getenv('POSTGRES_PORT', '5432')}"
        f"/{os.getenv('POSTGRES_DB', 'encuesta_db')}"
    )


@pytest.fixture
async def postgres_store() -> AsyncGenerator[PostgresStore, None]:
    """PostgreSQL store with empty tables.

    Truncates every table before the test so each one starts from a fresh
    catalog seed.
    """
    store = PostgresStore(postgres_dsn(), min_size=1, max_size=10, timeout=5.0)
    try:
        await store.initialize()
    except Exception as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    async with store.pool.acquire() as conn:
        await conn.execute(
            "TRUNCATE votes, participants, candidates, offices RESTART IDENTITY CASCADE"
        )

    yield store

    await store.close()


@pytest.fixture
async def pg_service(postgres_store: PostgresStore) -> AsyncGenerator[ElectionService, None]:
    """Election service over PostgreSQL with the default catalog seeded."""
    svc = ElectionService(postgres_store)
    await svc.catalog.seed_if_empty()
    yield svc
