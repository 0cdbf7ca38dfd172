"""Library facade over the catalog, registry, coordinator and tally components."""
import logging
from typing import Any, Dict, List, Optional

from ..shared import (
    BallotReceipt,
    Eligibility,
    OfficeWithCandidates,
    Participant,
    ParticipantProfile,
    TallyRow,
)
from .catalog import CatalogStore
from .config import Settings
from .coordinator import VotingCoordinator
from .database import PostgresStore
from .ledger import BallotLedger
from .memory import InMemoryStore
from .registry import ParticipantRegistry
from .store import Store
from .tally import TallyEngine

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    """Create the store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == "memory":
        return InMemoryStore(timeout=settings.STORE_TIMEOUT_SECONDS)

    return PostgresStore(
        settings.postgres_dsn,
        min_size=settings.POSTGRES_POOL_MIN_SIZE,
        max_size=settings.POSTGRES_POOL_MAX_SIZE,
        timeout=settings.STORE_TIMEOUT_SECONDS
    )


class ElectionService:
    """
    Entry point for the HTTP layer and scripts.

    Every operation either completes or raises an ElectionError subclass.
    """

    def __init__(self, store: Store):
        self.store = store
        self.catalog = CatalogStore(store)
        self.registry = ParticipantRegistry(store)
        self.ledger = BallotLedger(store)
        self.coordinator = VotingCoordinator(store, self.registry, self.ledger)
        self.tally_engine = TallyEngine(store, self.catalog)

    async def start(self) -> None:
        """Initialize the store and seed the catalog."""
        await self.store.initialize()
        await self.catalog.seed_if_empty()

    async def close(self) -> None:
        await self.store.close()

    async def register_participant(
        self,
        email: str,
        profile: Optional[ParticipantProfile] = None
    ) -> Participant:
        return await self.registry.register(email, profile)

    async def check_eligibility(self, email: str) -> Eligibility:
        return await self.coordinator.check_eligibility(email)

    async def list_catalog(self) -> List[OfficeWithCandidates]:
        return await self.catalog.list_offices_with_candidates()

    async def submit_ballot(self, email: str, votes: Any) -> BallotReceipt:
        return await self.coordinator.submit_ballot(email, votes)

    async def get_tally(self) -> List[TallyRow]:
        return await self.tally_engine.tally()

    async def get_results_summary(self) -> List[Dict[str, Any]]:
        return await self.tally_engine.tally_by_office()

    async def list_participants(self) -> List[Participant]:
        return await self.registry.list_participants()

    async def check_health(self) -> bool:
        return await self.store.check_health()
