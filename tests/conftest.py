"""Pytest fixtures for the ballot service tests.

Unit and API tests run against the in-memory store, so no external services
are needed. The HTTP app is exercised through an httpx ASGI transport.
"""

import os

# Must be set before the app settings are loaded
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("NOTIFIER_ENABLED", "false")

from typing import AsyncGenerator, Dict, List

import httpx
import pytest

from encuesta.ballot_api import ElectionService, InMemoryStore
from encuesta.shared import BallotEntry, Participant, ParticipantProfile


class FakeNotifier:
    """Records voting links instead of publishing them."""

    def __init__(self, succeed: bool = True):
        self.enabled = True
        self.succeed = succeed
        self.sent: List[str] = []

    async def send_voting_link(self, participant: Participant) -> bool:
        self.sent.append(participant.email)
        return self.succeed

    async def check_health(self) -> bool:
        return self.succeed


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store with a short timeout."""
    return InMemoryStore(timeout=0.5)


@pytest.fixture
async def service(store: InMemoryStore) -> AsyncGenerator[ElectionService, None]:
    """Election service over a freshly seeded catalog."""
    svc = ElectionService(store)
    await svc.start()
    yield svc
    await svc.close()


@pytest.fixture
async def full_ballot(service: ElectionService) -> List[BallotEntry]:
    """One vote per office, choosing each office's first candidate."""
    catalog = await service.list_catalog()
    return [
        BallotEntry(office_id=entry.office.id, candidate_id=entry.candidates[0].id)
        for entry in catalog
    ]


@pytest.fixture
def sample_profile() -> ParticipantProfile:
    return ParticipantProfile(name="Ana", surname="Pérez", age=34, gender="F", sector="Centro")


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
async def api_client(
    service: ElectionService,
    fake_notifier: FakeNotifier,
    monkeypatch
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the FastAPI app with the test service and notifier."""
    from encuesta.ballot_api import main

    monkeypatch.setattr(main, "service", service)
    monkeypatch.setattr(main, "notifier", fake_notifier)

    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def registration_payload() -> Dict[str, object]:
    return {
        "email": "a@x.com",
        "name": "Ana",
        "surname": "Pérez",
        "age": 34,
        "gender": "F",
        "sector": "Centro"
    }


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring a running PostgreSQL"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )
