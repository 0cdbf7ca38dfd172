"""
Shared models and errors for the ballot service.

This package contains common code used by the store, the core components and
the HTTP layer:
- Catalog, participant, vote and tally records
- Seed election structure
- Error taxonomy
"""

from .models import (
    SEED_OFFICES,
    SEED_CANDIDATES,
    DISPLAY_RANK,
    EligibilityStatus,
    Office,
    Candidate,
    OfficeWithCandidates,
    ParticipantProfile,
    Participant,
    BallotEntry,
    Vote,
    BallotReceipt,
    Eligibility,
    TallyRow,
    get_current_timestamp,
)
from .errors import (
    ElectionError,
    DuplicateEmailError,
    NotRegisteredError,
    NotFoundError,
    AlreadyVotedError,
    InvalidInputError,
    UnknownCandidateError,
    StorageUnavailableError,
)

__all__ = [
    'SEED_OFFICES',
    'SEED_CANDIDATES',
    'DISPLAY_RANK',
    'EligibilityStatus',
    'Office',
    'Candidate',
    'OfficeWithCandidates',
    'ParticipantProfile',
    'Participant',
    'BallotEntry',
    'Vote',
    'BallotReceipt',
    'Eligibility',
    'TallyRow',
    'get_current_timestamp',
    'ElectionError',
    'DuplicateEmailError',
    'NotRegisteredError',
    'NotFoundError',
    'AlreadyVotedError',
    'InvalidInputError',
    'UnknownCandidateError',
    'StorageUnavailableError',
]

__version__ = '1.0.0'
