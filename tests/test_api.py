"""Tests for the HTTP endpoints.

Runs the FastAPI app in-process against the in-memory store.
"""

import asyncio

import httpx
import pytest

from encuesta.ballot_api import ElectionService
from encuesta.shared import StorageUnavailableError


async def catalog_ballot(api_client: httpx.AsyncClient, choice: int = 0) -> list:
    response = await api_client.get("/api/v1/catalog")
    return [
        {"office_id": office["office_id"], "candidate_id": office["candidates"][choice]["id"]}
        for office in response.json()
    ]


@pytest.mark.asyncio
class TestParticipantEndpoints:
    """Tests for /api/v1/participants endpoints."""

    async def test_register_participant(
        self,
        api_client: httpx.AsyncClient,
        registration_payload: dict,
        fake_notifier
    ):
        """Test: Registration answers 201 and publishes the voting link."""
        response = await api_client.post("/api/v1/participants", json=registration_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "a@x.com"
        assert data["notified"] is True
        assert fake_notifier.sent == ["a@x.com"]

    async def test_register_duplicate_resends_link(
        self,
        api_client: httpx.AsyncClient,
        registration_payload: dict,
        fake_notifier
    ):
        """Test: Duplicate email answers 409, keeps one row and resends the link."""
        await api_client.post("/api/v1/participants", json=registration_payload)

        response = await api_client.post("/api/v1/participants", json=registration_payload)

        assert response.status_code == 409
        assert response.headers["X-Error-Code"] == "duplicate_email"
        assert fake_notifier.sent == ["a@x.com", "a@x.com"]

        listing = await api_client.get("/api/v1/participants")
        assert len(listing.json()) == 1

    async def test_register_survives_notifier_failure(
        self,
        api_client: httpx.AsyncClient,
        registration_payload: dict,
        fake_notifier
    ):
        """Test: A failed notification does not undo the registration."""
        fake_notifier.succeed = False

        response = await api_client.post("/api/v1/participants", json=registration_payload)

        assert response.status_code == 201
        assert response.json()["notified"] is False
        eligibility = await api_client.get(
            "/api/v1/participants/eligibility", params={"email": "a@x.com"}
        )
        assert eligibility.json()["eligible"] is True

    @pytest.mark.parametrize("payload", [{}, {"email": ""}, {"email": "a@x.com", "age": -1}])
    async def test_register_invalid_payload(self, api_client: httpx.AsyncClient, payload: dict):
        response = await api_client.post("/api/v1/participants", json=payload)

        assert response.status_code == 400
        assert response.headers["X-Error-Code"] == "invalid_input"

    async def test_list_participants(self, api_client: httpx.AsyncClient, registration_payload: dict):
        """Test: Listing returns profile fields and has_voted."""
        await api_client.post("/api/v1/participants", json=registration_payload)

        response = await api_client.get("/api/v1/participants")

        assert response.status_code == 200
        participant = response.json()[0]
        assert participant["email"] == "a@x.com"
        assert participant["sector"] == "Centro"
        assert participant["has_voted"] is False

    async def test_eligibility(self, api_client: httpx.AsyncClient, registration_payload: dict):
        """Test: Eligibility reports not_registered, then eligible, then already_voted."""
        url = "/api/v1/participants/eligibility"

        response = await api_client.get(url, params={"email": "a@x.com"})
        assert response.json() == {"eligible": False, "reason": "not_registered", "participant_id": None}

        created = await api_client.post("/api/v1/participants", json=registration_payload)
        response = await api_client.get(url, params={"email": "a@x.com"})
        assert response.json() == {
            "eligible": True, "reason": None, "participant_id": created.json()["id"]
        }

        await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": await catalog_ballot(api_client)}
        )
        response = await api_client.get(url, params={"email": "a@x.com"})
        assert response.json()["reason"] == "already_voted"


@pytest.mark.asyncio
class TestCatalogEndpoint:
    """Tests for GET /api/v1/catalog."""

    async def test_catalog_shape_and_order(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/api/v1/catalog")

        assert response.status_code == 200
        offices = response.json()
        assert [o["office_name"] for o in offices] == ["Presidente", "Vicepresidente", "Secretario(a)"]
        for office in offices:
            assert [c["name"] for c in office["candidates"]] == [
                "Candidato 1", "Candidato 2", "Candidato 3", "Ninguno", "No se"
            ]


@pytest.mark.asyncio
class TestBallotEndpoint:
    """Tests for POST /api/v1/ballots."""

    async def test_submit_ballot(self, api_client: httpx.AsyncClient, registration_payload: dict):
        """Test: Valid ballot answers 201 with one row per office."""
        await api_client.post("/api/v1/participants", json=registration_payload)

        response = await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": await catalog_ballot(api_client)}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["votes_recorded"] == 3
        assert data["status"] == "accepted"

    async def test_submit_twice_conflict(self, api_client: httpx.AsyncClient, registration_payload: dict):
        await api_client.post("/api/v1/participants", json=registration_payload)
        ballot = {"email": "a@x.com", "votes": await catalog_ballot(api_client)}
        await api_client.post("/api/v1/ballots", json=ballot)

        response = await api_client.post("/api/v1/ballots", json=ballot)

        assert response.status_code == 409
        assert response.headers["X-Error-Code"] == "already_voted"

    async def test_concurrent_submissions(self, api_client: httpx.AsyncClient, registration_payload: dict):
        """Test: Concurrent identical requests commit once, the rest get 409."""
        await api_client.post("/api/v1/participants", json=registration_payload)
        ballot = {"email": "a@x.com", "votes": await catalog_ballot(api_client)}

        responses = await asyncio.gather(
            *[api_client.post("/api/v1/ballots", json=ballot) for _ in range(4)]
        )

        codes = sorted(r.status_code for r in responses)
        assert codes == [201, 409, 409, 409]

    async def test_unregistered(self, api_client: httpx.AsyncClient):
        response = await api_client.post(
            "/api/v1/ballots",
            json={"email": "b@x.com", "votes": await catalog_ballot(api_client)}
        )

        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "not_registered"

    async def test_empty_and_repeated_office(self, api_client: httpx.AsyncClient, registration_payload: dict):
        """Test: Empty ballots and repeated offices answer 400 and record nothing."""
        await api_client.post("/api/v1/participants", json=registration_payload)
        ballot = await catalog_ballot(api_client)

        empty = await api_client.post("/api/v1/ballots", json={"email": "a@x.com", "votes": []})
        repeated = await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": [ballot[0], ballot[0]]}
        )

        assert empty.status_code == 400
        assert repeated.status_code == 400
        assert repeated.headers["X-Error-Code"] == "invalid_input"

        results = await api_client.get("/api/v1/results")
        assert sum(row["vote_count"] for row in results.json()) == 0

    async def test_unknown_candidate(self, api_client: httpx.AsyncClient, registration_payload: dict):
        await api_client.post("/api/v1/participants", json=registration_payload)

        response = await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": [{"office_id": 1, "candidate_id": 999}]}
        )

        assert response.status_code == 400
        assert response.headers["X-Error-Code"] == "unknown_candidate"

    @pytest.mark.parametrize("vote", [
        {"office_id": "uno"},
        {"office_id": 1},
        {"office_id": True, "candidate_id": "1"},
        {"office_id": 1, "candidate_id": "1"},
        {"office_id": 1, "candidate_id": True},
        {"office_id": 0, "candidate_id": 1},
    ])
    async def test_malformed_entry_is_invalid_input(
        self,
        api_client: httpx.AsyncClient,
        registration_payload: dict,
        vote: dict
    ):
        """Test: Malformed or non-integer ids answer 400 invalid_input and record nothing.

        Flow:
        1. Register a@x.com
        2. Submit a ballot whose only entry is malformed
        3. Verify 400 with X-Error-Code invalid_input
        4. Verify the participant is still eligible and no votes exist
        """
        await api_client.post("/api/v1/participants", json=registration_payload)

        response = await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": [vote]}
        )

        assert response.status_code == 400
        assert response.headers["X-Error-Code"] == "invalid_input"

        eligibility = await api_client.get(
            "/api/v1/participants/eligibility", params={"email": "a@x.com"}
        )
        assert eligibility.json()["eligible"] is True
        results = await api_client.get("/api/v1/results")
        assert sum(row["vote_count"] for row in results.json()) == 0

    async def test_storage_unavailable(
        self,
        api_client: httpx.AsyncClient,
        service: ElectionService,
        monkeypatch
    ):
        """Test: Store failures answer 503 with Retry-After."""
        async def unavailable(email, votes):
            raise StorageUnavailableError("timeout")

        monkeypatch.setattr(service, "submit_ballot", unavailable)

        response = await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": [{"office_id": 1, "candidate_id": 1}]}
        )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"


@pytest.mark.asyncio
class TestResultsEndpoints:
    """Tests for results, health and root endpoints."""

    async def test_results_include_zero_rows(self, api_client: httpx.AsyncClient, registration_payload: dict):
        """Test: Results list all 15 pairs, with the voted ones at 1."""
        await api_client.post("/api/v1/participants", json=registration_payload)
        await api_client.post(
            "/api/v1/ballots",
            json={"email": "a@x.com", "votes": await catalog_ballot(api_client, choice=2)}
        )

        response = await api_client.get("/api/v1/results")

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 15
        assert set(rows[0]) == {"office_name", "candidate_name", "vote_count"}
        voted = [(r["office_name"], r["candidate_name"]) for r in rows if r["vote_count"] == 1]
        assert voted == [
            ("Presidente", "Candidato 3"),
            ("Vicepresidente", "Candidato 3"),
            ("Secretario(a)", "Candidato 3"),
        ]

    async def test_results_summary(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/api/v1/results/summary")

        assert response.status_code == 200
        assert [o["total_votes"] for o in response.json()] == [0, 0, 0]

    async def test_health(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["store"] == "connected"

    async def test_root_and_metrics(self, api_client: httpx.AsyncClient):
        root = await api_client.get("/")
        metrics = await api_client.get("/metrics")

        assert root.json()["status"] == "running"
        assert metrics.status_code == 200
        assert "ballots_committed_total" in metrics.text
