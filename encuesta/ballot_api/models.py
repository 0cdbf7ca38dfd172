"""Pydantic models for request/response validation."""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, validator


class RegistrationRequest(BaseModel):
    """Participant registration request model."""

    email: str = Field(..., description="Participant email, matched exactly")
    name: Optional[str] = Field(default=None, description="First name")
    surname: Optional[str] = Field(default=None, description="Last name")
    age: Optional[int] = Field(default=None, ge=0, le=130, description="Age in years")
    gender: Optional[str] = Field(default=None, description="Self-reported gender")
    sector: Optional[str] = Field(default=None, description="Sector or neighbourhood")

    @validator("email")
    def validate_email(cls, v):
        """Validate email is not blank."""
        if not v or not v.strip():
            raise ValueError("Email is required")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "email": "ana@example.com",
                "name": "Ana",
                "surname": "Pérez",
                "age": 34,
                "gender": "F",
                "sector": "Centro"
            }
        }


class RegistrationResponse(BaseModel):
    """Participant registration response model."""

    id: int = Field(..., description="Participant identifier")
    email: str = Field(..., description="Registered email")
    notified: bool = Field(..., description="Whether the voting link was published")


class ParticipantResponse(BaseModel):
    """Participant listing model."""

    id: int
    email: str
    name: Optional[str] = None
    surname: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    sector: Optional[str] = None
    has_voted: bool
    created_at: Optional[datetime] = None


class EligibilityResponse(BaseModel):
    """Eligibility check response model."""

    eligible: bool = Field(..., description="Whether the email may vote now")
    reason: Optional[Literal["not_registered", "already_voted"]] = Field(
        default=None, description="Why the email may not vote"
    )
    participant_id: Optional[int] = Field(default=None, description="Participant identifier")


class CandidateInfo(BaseModel):
    """Candidate information model."""

    id: int
    name: str


class OfficeInfo(BaseModel):
    """Office with its candidates in display order."""

    office_id: int
    office_name: str
    candidates: List[CandidateInfo]


class BallotVote(BaseModel):
    """One (office, candidate) choice."""

    office_id: int = Field(..., strict=True, gt=0, description="Office ID")
    candidate_id: int = Field(..., strict=True, gt=0, description="Candidate ID")


class BallotRequest(BaseModel):
    """Ballot submission request model."""

    email: str = Field(..., description="Participant email")
    votes: List[BallotVote] = Field(..., description="One choice per office")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "ana@example.com",
                "votes": [
                    {"office_id": 1, "candidate_id": 2},
                    {"office_id": 2, "candidate_id": 6},
                    {"office_id": 3, "candidate_id": 14}
                ]
            }
        }


class BallotResponse(BaseModel):
    """Ballot submission response model."""

    participant_id: int = Field(..., description="Participant identifier")
    votes_recorded: int = Field(..., description="Number of ledger rows written")
    cast_at: datetime = Field(..., description="Shared timestamp of the ballot")
    status: str = Field(default="accepted", description="Status of the submission")
    message: str = Field(default="Ballot recorded successfully", description="Response message")


class TallyResponse(BaseModel):
    """Vote count for one (office, candidate) pair."""

    office_name: str
    candidate_name: str
    vote_count: int

    class Config:
        json_schema_extra = {
            "example": {
                "office_name": "Presidente",
                "candidate_name": "Candidato 1",
                "vote_count": 42
            }
        }


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(..., description="Health check timestamp")


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(..., description="Error message")
