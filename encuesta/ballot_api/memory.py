"""In-memory store used for tests and local runs."""
import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from ..shared import (
    BallotEntry,
    Candidate,
    Office,
    Participant,
    ParticipantProfile,
    StorageUnavailableError,
    Vote,
    get_current_timestamp,
)
from .store import Store, StoreTransaction

logger = logging.getLogger(__name__)


@dataclass
class _Tables:
    """The four relations plus their id sequences."""
    offices: Dict[int, Office] = field(default_factory=dict)
    candidates: Dict[int, Candidate] = field(default_factory=dict)
    participants: Dict[int, Participant] = field(default_factory=dict)
    votes: List[Vote] = field(default_factory=list)
    sequences: Counter = field(default_factory=Counter)

    def next_id(self, table: str) -> int:
        self.sequences[table] += 1
        return self.sequences[table]

    def snapshot(self) -> "_Tables":
        # Records are frozen, so copying the containers is enough
        return _Tables(
            offices=dict(self.offices),
            candidates=dict(self.candidates),
            participants=dict(self.participants),
            votes=list(self.votes),
            sequences=Counter(self.sequences)
        )


class InMemoryTransaction(StoreTransaction):
    """
    Transaction over the committed tables.

    Reads go straight to the committed tables until the first write, which
    takes a private working copy used by every later read and write.
    """

    def __init__(self, committed: _Tables):
        self._committed = committed
        self._working: Optional[_Tables] = None

    @property
    def tables(self) -> _Tables:
        return self._working if self._working is not None else self._committed

    @property
    def changes(self) -> Optional[_Tables]:
        """The working copy, or None if nothing was written."""
        return self._working

    def _writable(self) -> _Tables:
        if self._working is None:
            self._working = self._committed.snapshot()
        return self._working

    async def count_offices(self) -> int:
        return len(self.tables.offices)

    async def lock_catalog(self) -> None:
        # The store lock already serializes every transaction
        return None

    async def insert_office(self, name: str) -> Office:
        tables = self._writable()
        office = Office(id=tables.next_id("offices"), name=name)
        tables.offices[office.id] = office
        return office

    async def insert_candidate(self, office_id: int, name: str, rank: Optional[int]) -> Candidate:
        tables = self._writable()
        candidate = Candidate(
            id=tables.next_id("candidates"),
            office_id=office_id,
            name=name,
            rank=rank
        )
        tables.candidates[candidate.id] = candidate
        return candidate

    async def fetch_offices(self) -> List[Office]:
        return [self.tables.offices[k] for k in sorted(self.tables.offices)]

    async def fetch_candidates(self) -> List[Candidate]:
        return [self.tables.candidates[k] for k in sorted(self.tables.candidates)]

    async def insert_participant(self, email: str, profile: ParticipantProfile) -> Optional[Participant]:
        if await self.fetch_participant(email) is not None:
            return None
        tables = self._writable()
        participant = Participant(
            id=tables.next_id("participants"),
            email=email,
            profile=profile,
            has_voted=False,
            created_at=get_current_timestamp()
        )
        tables.participants[participant.id] = participant
        return participant

    async def fetch_participant(self, email: str, for_update: bool = False) -> Optional[Participant]:
        for participant in self.tables.participants.values():
            if participant.email == email:
                return participant
        return None

    async def fetch_participants(self) -> List[Participant]:
        return [self.tables.participants[k] for k in sorted(self.tables.participants)]

    async def set_has_voted(self, participant_id: int) -> bool:
        participant = self.tables.participants.get(participant_id)
        if participant is None or participant.has_voted:
            return False
        self._writable().participants[participant_id] = replace(participant, has_voted=True)
        return True

    async def insert_votes(
        self,
        participant_id: int,
        entries: Sequence[BallotEntry],
        cast_at: datetime
    ) -> List[Vote]:
        tables = self._writable()
        votes = []
        for entry in entries:
            vote = Vote(
                id=tables.next_id("votes"),
                participant_id=participant_id,
                office_id=entry.office_id,
                candidate_id=entry.candidate_id,
                cast_at=cast_at
            )
            tables.votes.append(vote)
            votes.append(vote)
        return votes

    async def count_votes(self) -> Dict[Tuple[int, int], int]:
        return dict(Counter((v.office_id, v.candidate_id) for v in self.tables.votes))


class InMemoryStore(Store):
    """
    Process-local store.

    A single asyncio lock is held for the whole of each transaction, so every
    transaction is serializable. Writes go to a copy of the tables that
    replaces the committed state only when the block exits cleanly. Read-only
    transactions never copy.
    """

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._tables = _Tables()
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        logger.info("In-memory store initialized")

    async def close(self) -> None:
        logger.info("In-memory store closed")

    async def check_health(self) -> bool:
        return True

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryTransaction]:
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StorageUnavailableError(
                f"Timed out after {self.timeout}s waiting for the store"
            ) from e

        try:
            tx = InMemoryTransaction(self._tables)
            yield tx
            if tx.changes is not None:
                self._tables = tx.changes
        finally:
            self._lock.release()
