"""
Shared data models and utilities for the ballot service.

This module contains:
- Catalog records: Office, Candidate and the seed election structure
- Participant and Vote records
- Ballot entries, receipts, eligibility and tally rows
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple


# Seed election structure, in creation order
SEED_OFFICES: Tuple[str, ...] = ("Presidente", "Vicepresidente", "Secretario(a)")

# Candidate options offered under every office, in display order
SEED_CANDIDATES: Tuple[str, ...] = (
    "Candidato 1",
    "Candidato 2",
    "Candidato 3",
    "Ninguno",
    "No se",
)

# Fixed display rank by candidate name; names not listed here are unranked
DISPLAY_RANK: Dict[str, int] = {name: rank for rank, name in enumerate(SEED_CANDIDATES)}


class EligibilityStatus(str, Enum):
    """Outcome of the vote eligibility rule."""
    ELIGIBLE = "eligible"
    NOT_REGISTERED = "not_registered"
    ALREADY_VOTED = "already_voted"


@dataclass(frozen=True)
class Office:
    """An electable position (cargo)."""
    id: int
    name: str


@dataclass(frozen=True)
class Candidate:
    """
    One selectable option under an office (aspirante).

    Attributes:
        id: Candidate identifier
        office_id: Office the candidate belongs to
        name: Display name
        rank: Fixed display position; None sorts after every ranked option
    """
    id: int
    office_id: int
    name: str
    rank: Optional[int] = None

    @property
    def sort_key(self) -> Tuple[bool, int, str]:
        return (self.rank is None, self.rank if self.rank is not None else 0, self.name)


@dataclass(frozen=True)
class OfficeWithCandidates:
    """An office and its candidates in display order."""
    office: Office
    candidates: List[Candidate]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "office_id": self.office.id,
            "office_name": self.office.name,
            "candidates": [{"id": c.id, "name": c.name} for c in self.candidates],
        }


@dataclass(frozen=True)
class ParticipantProfile:
    """Optional self-reported participant details."""
    name: Optional[str] = None
    surname: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    sector: Optional[str] = None


@dataclass(frozen=True)
class Participant:
    """
    A registered voter identified by email.

    Attributes:
        id: Participant identifier
        email: Email address, matched as an exact string
        profile: Optional profile fields
        has_voted: Set once by the ballot commit, never cleared
        created_at: Registration time
    """
    id: int
    email: str
    profile: ParticipantProfile = field(default_factory=ParticipantProfile)
    has_voted: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.update(data.pop("profile"))
        return data


@dataclass(frozen=True)
class BallotEntry:
    """A single (office, candidate) choice inside a ballot."""
    office_id: int
    candidate_id: int


@dataclass(frozen=True)
class Vote:
    """A committed ledger row. Never updated or deleted."""
    id: int
    participant_id: int
    office_id: int
    candidate_id: int
    cast_at: datetime


@dataclass(frozen=True)
class BallotReceipt:
    """Acknowledgement of a committed ballot."""
    participant_id: int
    email: str
    votes: List[Vote]
    cast_at: datetime


@dataclass(frozen=True)
class Eligibility:
    """
    Result of the eligibility rule for an email.

    The participant is only set when the email is registered.
    """
    status: EligibilityStatus
    participant: Optional[Participant] = None

    @property
    def eligible(self) -> bool:
        return self.status == EligibilityStatus.ELIGIBLE

    @property
    def reason(self) -> Optional[str]:
        if self.eligible:
            return None
        return self.status.value

    @classmethod
    def of(cls, participant: Optional[Participant]) -> "Eligibility":
        """Apply the single eligibility rule to a (possibly missing) participant."""
        if participant is None:
            return cls(EligibilityStatus.NOT_REGISTERED)
        if participant.has_voted:
            return cls(EligibilityStatus.ALREADY_VOTED, participant)
        return cls(EligibilityStatus.ELIGIBLE, participant)


@dataclass(frozen=True)
class TallyRow:
    """Vote count for one (office, candidate) pair of the catalog."""
    office_id: int
    office_name: str
    candidate_id: int
    candidate_name: str
    vote_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_current_timestamp() -> datetime:
    """
    Get current UTC time.

    Returns:
        datetime: Timezone-aware UTC timestamp
    """
    return datetime.now(timezone.utc)
