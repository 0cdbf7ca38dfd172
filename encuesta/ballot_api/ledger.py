"""Append-only ballot ledger."""
import logging
from typing import List, Optional, Sequence

from ..shared import BallotEntry, Vote, get_current_timestamp
from .store import Store, StoreTransaction

logger = logging.getLogger(__name__)


class BallotLedger:
    """
    Records cast votes.

    The ledger only appends. It does not check one-vote-per-office; that is
    the coordinator's job, and other writers may share the table.
    """

    def __init__(self, store: Store):
        self.store = store

    async def append_votes(
        self,
        participant_id: int,
        entries: Sequence[BallotEntry],
        tx: Optional[StoreTransaction] = None
    ) -> List[Vote]:
        """
        Insert one row per entry, all sharing one timestamp.

        Args:
            participant_id: Participant casting the votes
            entries: (office, candidate) choices
            tx: Enclosing transaction, if any

        Returns:
            List of the inserted votes
        """
        cast_at = get_current_timestamp()
        async with self.store.scoped(tx) as tx:
            votes = await tx.insert_votes(participant_id, entries, cast_at)

        logger.debug(f"Appended {len(votes)} votes for participant {participant_id}")
        return votes
