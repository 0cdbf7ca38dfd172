"""Tests for participant registration, lookup and eligibility."""

import pytest

from encuesta.ballot_api import ElectionService
from encuesta.shared import (
    DuplicateEmailError,
    EligibilityStatus,
    InvalidInputError,
    NotFoundError,
    ParticipantProfile,
)


@pytest.mark.asyncio
class TestParticipantRegistry:
    """Tests for ParticipantRegistry."""

    async def test_register_creates_participant_not_voted(
        self,
        service: ElectionService,
        sample_profile: ParticipantProfile
    ):
        """Test: Registration stores the profile with has_voted False."""
        participant = await service.register_participant("a@x.com", sample_profile)

        assert participant.id > 0
        assert participant.email == "a@x.com"
        assert participant.profile == sample_profile
        assert participant.has_voted is False
        assert participant.created_at is not None

    async def test_register_duplicate_email(self, service: ElectionService):
        """Test: Second registration of an email fails without a second row."""
        await service.register_participant("a@x.com")

        with pytest.raises(DuplicateEmailError):
            await service.register_participant("a@x.com", ParticipantProfile(name="Otra"))

        participants = await service.list_participants()
        assert [p.email for p in participants] == ["a@x.com"]
        assert participants[0].profile.name is None

    async def test_email_match_is_exact(self, service: ElectionService):
        """Test: Emails differing only in case are different participants."""
        await service.register_participant("a@x.com")
        await service.register_participant("A@x.com")

        assert len(await service.list_participants()) == 2

    @pytest.mark.parametrize("email", ["", "   ", None])
    async def test_register_blank_email(self, service: ElectionService, email):
        """Test: Blank or missing email is invalid input."""
        with pytest.raises(InvalidInputError):
            await service.register_participant(email)

        assert await service.list_participants() == []

    async def test_find_by_email(self, service: ElectionService):
        """Test: Lookup returns the participant or raises NotFoundError."""
        created = await service.register_participant("a@x.com")

        assert await service.registry.find_by_email("a@x.com") == created
        with pytest.raises(NotFoundError):
            await service.registry.find_by_email("b@x.com")

    async def test_mark_voted_is_idempotent(self, service: ElectionService):
        """Test: Marking twice changes the flag once and never errors."""
        participant = await service.register_participant("a@x.com")

        assert await service.registry.mark_voted(participant.id) is True
        assert await service.registry.mark_voted(participant.id) is False

        found = await service.registry.find_by_email("a@x.com")
        assert found.has_voted is True

    async def test_eligibility_states(self, service: ElectionService):
        """Test: Eligibility moves from not registered to eligible to already voted."""
        eligibility = await service.check_eligibility("a@x.com")
        assert eligibility.status == EligibilityStatus.NOT_REGISTERED
        assert eligibility.eligible is False
        assert eligibility.reason == "not_registered"

        participant = await service.register_participant("a@x.com")
        eligibility = await service.check_eligibility("a@x.com")
        assert eligibility.eligible is True
        assert eligibility.reason is None
        assert eligibility.participant == participant

        await service.registry.mark_voted(participant.id)
        eligibility = await service.check_eligibility("a@x.com")
        assert eligibility.status == EligibilityStatus.ALREADY_VOTED
        assert eligibility.reason == "already_voted"
