"""
Error taxonomy for the ballot service.

Every business outcome is an ElectionError subclass carrying a stable code.
StorageUnavailableError is the only fault; the rest are expected results
returned to callers.
"""

from typing import Optional


class ElectionError(Exception):
    """Base class for ballot service errors."""

    code = "election_error"
    retryable = False

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class DuplicateEmailError(ElectionError):
    """The email is already registered."""
    code = "duplicate_email"


class NotRegisteredError(ElectionError):
    """No participant is registered under the email."""
    code = "not_registered"


class NotFoundError(ElectionError):
    """A looked-up record does not exist."""
    code = "not_found"


class AlreadyVotedError(ElectionError):
    """The participant has already cast a ballot."""
    code = "already_voted"


class InvalidInputError(ElectionError):
    """The request is empty, malformed or ambiguous."""
    code = "invalid_input"


class UnknownCandidateError(ElectionError):
    """A ballot references an (office, candidate) pair missing from the catalog."""
    code = "unknown_candidate"


class StorageUnavailableError(ElectionError):
    """The store timed out or could not be reached. Safe to retry."""
    code = "storage_unavailable"
    retryable = True
