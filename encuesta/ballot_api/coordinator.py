"""
Voting transaction coordinator.

Participants move Unregistered -> Registered -> Voted. The move to Voted
happens in submit_ballot, which runs the eligibility rule, the catalog check,
the ledger append and the has-voted flip inside one store transaction.
"""
import logging
from collections.abc import Iterable, Mapping
from typing import Any, List, Optional

from ..shared import (
    AlreadyVotedError,
    BallotEntry,
    BallotReceipt,
    Eligibility,
    EligibilityStatus,
    InvalidInputError,
    NotRegisteredError,
    UnknownCandidateError,
)
from .ledger import BallotLedger
from .registry import ParticipantRegistry, validate_email
from .store import Store

logger = logging.getLogger(__name__)


def _as_id(value: Any, field_name: str) -> int:
    # bool is an int subclass but never a valid id
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"{field_name} must be a positive integer, got {value!r}")
    return value


def parse_entry(raw: Any) -> BallotEntry:
    """
    Build a BallotEntry from a BallotEntry, an (office_id, candidate_id) pair,
    or a mapping with office_id/candidate_id (officeId/candidateId also accepted).

    Raises:
        InvalidInputError: If the entry is malformed
    """
    if isinstance(raw, BallotEntry):
        office_id, candidate_id = raw.office_id, raw.candidate_id
    elif isinstance(raw, Mapping):
        office_id = raw.get("office_id", raw.get("officeId"))
        candidate_id = raw.get("candidate_id", raw.get("candidateId"))
    elif isinstance(raw, (tuple, list)) and len(raw) == 2:
        office_id, candidate_id = raw
    else:
        raise InvalidInputError(f"Malformed ballot entry: {raw!r}")

    return BallotEntry(
        office_id=_as_id(office_id, "office_id"),
        candidate_id=_as_id(candidate_id, "candidate_id")
    )


def parse_ballot(votes: Any) -> List[BallotEntry]:
    """
    Validate a ballot.

    Raises:
        InvalidInputError: If the ballot is empty, malformed, or names the
            same office more than once
    """
    if votes is None or isinstance(votes, (str, bytes, Mapping)) or not isinstance(votes, Iterable):
        raise InvalidInputError("Votes must be a list of (office, candidate) entries")

    entries = [parse_entry(raw) for raw in votes]
    if not entries:
        raise InvalidInputError("At least one vote is required")

    seen = set()
    for entry in entries:
        if entry.office_id in seen:
            raise InvalidInputError(f"Office {entry.office_id} appears more than once")
        seen.add(entry.office_id)
    return entries


class VotingCoordinator:
    """Enforces register once, vote once, and vote atomically across offices."""

    def __init__(
        self,
        store: Store,
        registry: Optional[ParticipantRegistry] = None,
        ledger: Optional[BallotLedger] = None
    ):
        self.store = store
        self.registry = registry or ParticipantRegistry(store)
        self.ledger = ledger or BallotLedger(store)

    async def check_eligibility(self, email: str) -> Eligibility:
        """Read-only eligibility check, same rule as the commit path."""
        return await self.registry.eligibility(email)

    async def submit_ballot(self, email: str, votes: Any) -> BallotReceipt:
        """
        Commit a ballot for a participant.

        Validation order: input shape, registration, has-voted, catalog
        membership. On success the ledger rows and the has-voted flag are
        committed together; on any failure neither is.

        Args:
            email: Participant email
            votes: Non-empty list of (office_id, candidate_id) choices

        Returns:
            BallotReceipt for the committed votes

        Raises:
            InvalidInputError: Empty, malformed or ambiguous ballot
            NotRegisteredError: Email not registered
            AlreadyVotedError: Participant already voted
            UnknownCandidateError: A pair is not in the catalog
            StorageUnavailableError: Store timeout or connection loss
        """
        email = validate_email(email)
        entries = parse_ballot(votes)

        async with self.store.transaction() as tx:
            eligibility = await self.registry.eligibility(email, tx=tx, for_update=True)
            if eligibility.status == EligibilityStatus.NOT_REGISTERED:
                raise NotRegisteredError(f"Email {email} is not registered")
            if eligibility.status == EligibilityStatus.ALREADY_VOTED:
                raise AlreadyVotedError(f"Email {email} has already voted")
            participant = eligibility.participant

            catalog = {(c.office_id, c.id) for c in await tx.fetch_candidates()}
            for entry in entries:
                if (entry.office_id, entry.candidate_id) not in catalog:
                    raise UnknownCandidateError(
                        f"Candidate {entry.candidate_id} is not an option "
                        f"for office {entry.office_id}"
                    )

            recorded = await self.ledger.append_votes(participant.id, entries, tx=tx)

            # Compare-and-swap; losing the race rolls the appended rows back
            if not await self.registry.mark_voted(participant.id, tx=tx):
                raise AlreadyVotedError(f"Email {email} has already voted")

        logger.info(
            f"Ballot committed: participant={participant.id}, votes={len(recorded)}"
        )
        return BallotReceipt(
            participant_id=participant.id,
            email=email,
            votes=recorded,
            cast_at=recorded[0].cast_at
        )
