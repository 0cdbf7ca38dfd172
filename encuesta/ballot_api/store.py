"""Store abstraction shared by the catalog, registry, ledger and tally components."""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from ..shared import BallotEntry, Candidate, Office, Participant, ParticipantProfile, Vote


class StoreTransaction(ABC):
    """
    Operations available inside one store transaction.

    Writes become visible to other transactions only when the enclosing
    Store.transaction() block exits without an exception.
    """

    @abstractmethod
    async def count_offices(self) -> int:
        ...

    @abstractmethod
    async def lock_catalog(self) -> None:
        """Serialize catalog seeding against concurrent seeders."""

    @abstractmethod
    async def insert_office(self, name: str) -> Office:
        ...

    @abstractmethod
    async def insert_candidate(self, office_id: int, name: str, rank: Optional[int]) -> Candidate:
        ...

    @abstractmethod
    async def fetch_offices(self) -> List[Office]:
        """Offices in creation order."""

    @abstractmethod
    async def fetch_candidates(self) -> List[Candidate]:
        ...

    @abstractmethod
    async def insert_participant(self, email: str, profile: ParticipantProfile) -> Optional[Participant]:
        """Insert a participant, or return None when the email is taken."""

    @abstractmethod
    async def fetch_participant(self, email: str, for_update: bool = False) -> Optional[Participant]:
        """
        Look a participant up by exact email.

        With for_update the row stays locked against other writers until the
        transaction ends.
        """

    @abstractmethod
    async def fetch_participants(self) -> List[Participant]:
        ...

    @abstractmethod
    async def set_has_voted(self, participant_id: int) -> bool:
        """
        Flip has_voted from False to True.

        Returns:
            bool: True if this call flipped the flag, False if it was already set
        """

    @abstractmethod
    async def insert_votes(
        self,
        participant_id: int,
        entries: Sequence[BallotEntry],
        cast_at: datetime
    ) -> List[Vote]:
        ...

    @abstractmethod
    async def count_votes(self) -> Dict[Tuple[int, int], int]:
        """Ledger row counts keyed by (office_id, candidate_id)."""


class Store(ABC):
    """A transactional store for the election data."""

    @abstractmethod
    async def initialize(self) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    async def check_health(self) -> bool:
        ...

    @abstractmethod
    def transaction(self) -> "AsyncIterator[StoreTransaction]":
        """
        Open a transaction.

        Used as ``async with store.transaction() as tx``. Commits on normal
        exit and rolls back on any exception. Timeouts and connection loss
        raise StorageUnavailableError.
        """

    @asynccontextmanager
    async def scoped(self, tx: Optional[StoreTransaction] = None) -> AsyncIterator[StoreTransaction]:
        """Reuse an enclosing transaction, or open a new one."""
        if tx is not None:
            yield tx
            return
        async with self.transaction() as new_tx:
            yield new_tx
