"""Tests for catalog seeding and ordering."""

import pytest

from encuesta.ballot_api import CatalogStore, InMemoryStore
from encuesta.shared import DISPLAY_RANK, SEED_CANDIDATES, SEED_OFFICES


@pytest.mark.asyncio
class TestCatalogStore:
    """Tests for CatalogStore."""

    async def test_seed_if_empty_inserts_default_structure(self, store: InMemoryStore):
        """Test: First seed inserts every office with the five options in order."""
        catalog = CatalogStore(store)

        assert await catalog.seed_if_empty() is True

        offices = await catalog.list_offices_with_candidates()
        assert [entry.office.name for entry in offices] == list(SEED_OFFICES)
        for entry in offices:
            assert [c.name for c in entry.candidates] == list(SEED_CANDIDATES)
            assert all(c.office_id == entry.office.id for c in entry.candidates)

    async def test_seed_if_empty_is_idempotent(self, store: InMemoryStore):
        """Test: Seeding twice inserts nothing the second time."""
        catalog = CatalogStore(store)
        await catalog.seed_if_empty()

        assert await catalog.seed_if_empty() is False

        offices = await catalog.list_offices_with_candidates()
        assert len(offices) == len(SEED_OFFICES)
        assert sum(len(entry.candidates) for entry in offices) == \
            len(SEED_OFFICES) * len(SEED_CANDIDATES)

    async def test_ordering_ignores_insertion_order(self, store: InMemoryStore):
        """Test: Candidates follow rank order, unranked names last and lexical.

        Flow:
        1. Seed candidates in shuffled order, plus two unranked options
        2. Verify display order is Candidato 1..3, Ninguno, No se, then
           the unranked names alphabetically
        """
        shuffled = ["No se", "Candidato 3", "Otro", "Ninguno", "Candidato 1", "Abstención", "Candidato 2"]
        catalog = CatalogStore(store, offices=["Tesorero"], candidates=shuffled)

        await catalog.seed_if_empty()
        offices = await catalog.list_offices_with_candidates()

        assert [c.name for c in offices[0].candidates] == [
            "Candidato 1", "Candidato 2", "Candidato 3", "Ninguno", "No se",
            "Abstención", "Otro",
        ]

    async def test_partial_candidate_list_keeps_display_rank(self, store: InMemoryStore):
        """Test: A subset of options in reverse order still lists ranked names first."""
        catalog = CatalogStore(store, offices=["X"], candidates=["No se", "Otro", "Candidato 1"])

        await catalog.seed_if_empty()
        offices = await catalog.list_offices_with_candidates()

        assert [c.name for c in offices[0].candidates] == ["Candidato 1", "No se", "Otro"]
        assert [c.rank for c in offices[0].candidates] == [
            DISPLAY_RANK["Candidato 1"], DISPLAY_RANK["No se"], None
        ]

    async def test_offices_listed_in_creation_order(self, store: InMemoryStore):
        """Test: Offices keep creation order, even with no candidates."""
        catalog = CatalogStore(store, offices=["Zeta", "Alfa", "Media"], candidates=[])
        await catalog.seed_if_empty()

        offices = await catalog.list_offices_with_candidates()

        assert [entry.office.name for entry in offices] == ["Zeta", "Alfa", "Media"]
        assert all(entry.candidates == [] for entry in offices)
