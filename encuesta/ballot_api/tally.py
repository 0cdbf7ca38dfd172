"""Tally engine: per-candidate vote counts joined against the catalog."""
import logging
from typing import Any, Dict, List, Optional

from ..shared import TallyRow
from .catalog import CatalogStore
from .store import Store

logger = logging.getLogger(__name__)


class TallyEngine:
    """Aggregates the ballot ledger over the catalog. Read-only."""

    def __init__(self, store: Store, catalog: Optional[CatalogStore] = None):
        self.store = store
        self.catalog = catalog or CatalogStore(store)

    async def tally(self) -> List[TallyRow]:
        """
        Count votes for every (office, candidate) pair of the catalog.

        Candidates without votes are reported with a zero count. Rows follow
        office creation order, then candidate display order.
        """
        async with self.store.transaction() as tx:
            offices = await self.catalog.list_offices_with_candidates(tx=tx)
            counts = await tx.count_votes()

        return [
            TallyRow(
                office_id=entry.office.id,
                office_name=entry.office.name,
                candidate_id=candidate.id,
                candidate_name=candidate.name,
                vote_count=counts.get((entry.office.id, candidate.id), 0)
            )
            for entry in offices
            for candidate in entry.candidates
        ]

    async def tally_by_office(self) -> List[Dict[str, Any]]:
        """
        Group the tally per office with totals and percentages.

        Returns:
            List of {office_id, office_name, total_votes, candidates}, where each
            candidate is {candidate_id, name, votes, percentage}
        """
        grouped: Dict[int, Dict[str, Any]] = {}
        for row in await self.tally():
            office = grouped.setdefault(row.office_id, {
                'office_id': row.office_id,
                'office_name': row.office_name,
                'total_votes': 0,
                'candidates': []
            })
            office['total_votes'] += row.vote_count
            office['candidates'].append({
                'candidate_id': row.candidate_id,
                'name': row.candidate_name,
                'votes': row.vote_count
            })

        for office in grouped.values():
            total_votes = office['total_votes']
            for candidate in office['candidates']:
                percentage = (candidate['votes'] / total_votes * 100) if total_votes > 0 else 0
                candidate['percentage'] = round(percentage, 2)

        return list(grouped.values())
