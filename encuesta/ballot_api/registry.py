"""Participant registry: registration, lookup and the eligibility rule."""
import logging
from typing import List, Optional

from ..shared import (
    DuplicateEmailError,
    Eligibility,
    InvalidInputError,
    NotFoundError,
    Participant,
    ParticipantProfile,
)
from .store import Store, StoreTransaction

logger = logging.getLogger(__name__)


def validate_email(email) -> str:
    """
    Validate an email argument.

    Emails are matched as exact strings, so no normalization is applied.

    Raises:
        InvalidInputError: If the email is missing or blank
    """
    if not isinstance(email, str) or not email.strip():
        raise InvalidInputError("Email is required")
    return email


class ParticipantRegistry:
    """One record per registered email with a single has-voted flag."""

    def __init__(self, store: Store):
        self.store = store

    async def register(
        self,
        email: str,
        profile: Optional[ParticipantProfile] = None
    ) -> Participant:
        """
        Register a participant who has not voted yet.

        Raises:
            InvalidInputError: If the email is blank
            DuplicateEmailError: If the email is already registered
        """
        email = validate_email(email)
        async with self.store.transaction() as tx:
            participant = await tx.insert_participant(email, profile or ParticipantProfile())

        if participant is None:
            logger.info(f"Registration refused, email already registered: {email}")
            raise DuplicateEmailError(f"Email {email} is already registered")

        logger.info(f"Participant registered: id={participant.id}, email={email}")
        return participant

    async def find_by_email(
        self,
        email: str,
        tx: Optional[StoreTransaction] = None
    ) -> Participant:
        """
        Get the participant registered under an email.

        Raises:
            NotFoundError: If no participant has that email
        """
        async with self.store.scoped(tx) as tx:
            participant = await tx.fetch_participant(email)
        if participant is None:
            raise NotFoundError(f"No participant with email {email}")
        return participant

    async def mark_voted(
        self,
        participant_id: int,
        tx: Optional[StoreTransaction] = None
    ) -> bool:
        """
        Set has_voted for a participant. Calling it again is a no-op.

        Returns:
            bool: True if this call changed the flag
        """
        async with self.store.scoped(tx) as tx:
            changed = await tx.set_has_voted(participant_id)
        if not changed:
            logger.debug(f"Participant {participant_id} already marked as voted")
        return changed

    async def eligibility(
        self,
        email: str,
        tx: Optional[StoreTransaction] = None,
        for_update: bool = False
    ) -> Eligibility:
        """
        Decide whether an email may vote.

        This is the only eligibility rule: the coordinator calls it with
        for_update inside its commit transaction, so a participant told
        "eligible" is rejected only if someone else voted in between.
        """
        email = validate_email(email)
        async with self.store.scoped(tx) as tx:
            participant = await tx.fetch_participant(email, for_update=for_update)
        return Eligibility.of(participant)

    async def list_participants(self) -> List[Participant]:
        """Get all participants in registration order."""
        async with self.store.transaction() as tx:
            return await tx.fetch_participants()
