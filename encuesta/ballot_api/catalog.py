"""Catalog of offices and their candidate options."""
import logging
from typing import Dict, List, Optional, Sequence

from ..shared import (
    DISPLAY_RANK,
    SEED_CANDIDATES,
    SEED_OFFICES,
    Candidate,
    OfficeWithCandidates,
)
from .store import Store, StoreTransaction

logger = logging.getLogger(__name__)


class CatalogStore:
    """Seeds and reads the static election structure."""

    def __init__(
        self,
        store: Store,
        offices: Sequence[str] = SEED_OFFICES,
        candidates: Sequence[str] = SEED_CANDIDATES
    ):
        self.store = store
        self.offices = tuple(offices)
        self.candidates = tuple(candidates)

    async def seed_if_empty(self) -> bool:
        """
        Insert the seed offices and candidates when no office exists yet.

        Candidates get their fixed display rank by name; other names are
        stored unranked and listed after the ranked ones.

        Returns:
            bool: True if the catalog was seeded by this call
        """
        async with self.store.transaction() as tx:
            await tx.lock_catalog()
            if await tx.count_offices() > 0:
                logger.info("Catalog already seeded, skipping")
                return False

            logger.info("Seeding catalog with default offices and candidates")
            for office_name in self.offices:
                office = await tx.insert_office(office_name)
                for candidate_name in self.candidates:
                    await tx.insert_candidate(
                        office.id, candidate_name, DISPLAY_RANK.get(candidate_name)
                    )

        logger.info(
            f"Catalog seeded: {len(self.offices)} offices, "
            f"{len(self.candidates)} candidates each"
        )
        return True

    async def list_offices_with_candidates(
        self,
        tx: Optional[StoreTransaction] = None
    ) -> List[OfficeWithCandidates]:
        """
        Get every office in creation order with its candidates in display order.

        Ranked candidates come first by rank, unranked ones after them by name.
        """
        async with self.store.scoped(tx) as tx:
            offices = await tx.fetch_offices()
            candidates = await tx.fetch_candidates()

        by_office: Dict[int, List[Candidate]] = {}
        for candidate in candidates:
            by_office.setdefault(candidate.office_id, []).append(candidate)

        return [
            OfficeWithCandidates(
                office=office,
                candidates=sorted(by_office.get(office.id, []), key=lambda c: c.sort_key)
            )
            for office in offices
        ]
