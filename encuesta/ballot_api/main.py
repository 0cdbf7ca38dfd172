"""
FastAPI application for the ballot API.

Exposes participant registration, eligibility, the catalog, ballot
submission and results over HTTP.
"""
import logging
from contextlib import asynccontextmanager
from typing import NoReturn

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from ..shared import (
    AlreadyVotedError,
    DuplicateEmailError,
    ElectionError,
    InvalidInputError,
    NotRegisteredError,
    ParticipantProfile,
    StorageUnavailableError,
    UnknownCandidateError,
    get_current_timestamp,
)
from .config import settings
from .models import (
    BallotRequest,
    BallotResponse,
    EligibilityResponse,
    ErrorResponse,
    HealthResponse,
    OfficeInfo,
    ParticipantResponse,
    RegistrationRequest,
    RegistrationResponse,
    TallyResponse,
)
from .notifier import VotingLinkNotifier
from .service import ElectionService, build_store

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
ballots_committed = Counter(
    "ballots_committed_total",
    "Total number of ballots committed"
)
ballot_rejections = Counter(
    "ballot_rejections_total",
    "Total number of ballots rejected",
    ["reason"]
)
registrations = Counter(
    "registrations_total",
    "Total number of registration attempts",
    ["outcome"]
)
notifier_failures = Counter(
    "voting_link_failures_total",
    "Total number of voting links that could not be published"
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"]
)

ERROR_STATUS = {
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    UnknownCandidateError: status.HTTP_400_BAD_REQUEST,
    NotRegisteredError: status.HTTP_404_NOT_FOUND,
    AlreadyVotedError: status.HTTP_409_CONFLICT,
    DuplicateEmailError: status.HTTP_409_CONFLICT,
    StorageUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

API_PREFIX = f"/api/{settings.API_VERSION}"

service = ElectionService(build_store(settings))
notifier = VotingLinkNotifier(settings)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    try:
        await service.start()
        await notifier.initialize()
        logger.info(f"{settings.SERVICE_NAME} started successfully")

    except Exception as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    await notifier.close()
    await service.close()
    logger.info(f"{settings.SERVICE_NAME} shut down successfully")


app = FastAPI(
    title="Encuesta Ballot API",
    description="API for participant registration, ballot submission and results",
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed request bodies as invalid input, like the service layer does."""
    if request.url.path == f"{API_PREFIX}/ballots":
        ballot_rejections.labels(reason=InvalidInputError.code).inc()
    logger.info(f"Rejected malformed request to {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
        headers={"X-Error-Code": InvalidInputError.code}
    )


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    with request_duration.labels(
        method=request.method,
        endpoint=request.url.path
    ).time():
        return await call_next(request)


def raise_http_error(error: ElectionError) -> NoReturn:
    """Translate a service error into an HTTPException."""
    status_code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = {"X-Error-Code": error.code}
    if error.retryable:
        headers["Retry-After"] = "1"
    raise HTTPException(status_code=status_code, detail=error.message, headers=headers)


def internal_error(action: str, error: Exception) -> HTTPException:
    logger.error(f"Error {action}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )


@app.post(
    f"{API_PREFIX}/participants",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid registration"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def register_participant(request: Request, registration: RegistrationRequest) -> RegistrationResponse:
    """
    Register a participant and publish their voting link.

    A duplicate email answers 409; the voting link is published again when
    RESEND_LINK_ON_DUPLICATE is set.
    """
    profile = ParticipantProfile(
        name=registration.name,
        surname=registration.surname,
        age=registration.age,
        gender=registration.gender,
        sector=registration.sector
    )
    try:
        participant = await service.register_participant(registration.email, profile)

    except DuplicateEmailError as e:
        registrations.labels(outcome="duplicate").inc()
        if settings.RESEND_LINK_ON_DUPLICATE:
            await resend_voting_link(registration.email)
        raise_http_error(e)
    except ElectionError as e:
        registrations.labels(outcome=e.code).inc()
        raise_http_error(e)
    except Exception as e:
        raise internal_error("registering participant", e)

    registrations.labels(outcome="created").inc()

    notified = await notifier.send_voting_link(participant)
    if not notified and notifier.enabled:
        notifier_failures.inc()

    return RegistrationResponse(id=participant.id, email=participant.email, notified=notified)


async def resend_voting_link(email: str) -> None:
    try:
        participant = await service.registry.find_by_email(email)
    except ElectionError as e:
        logger.warning(f"Could not resend voting link to {email}: {e.message}")
        return
    if not await notifier.send_voting_link(participant) and notifier.enabled:
        notifier_failures.inc()


@app.get(
    f"{API_PREFIX}/participants",
    response_model=list[ParticipantResponse]
)
async def list_participants() -> list[ParticipantResponse]:
    """Get all registered participants."""
    try:
        participants = await service.list_participants()
        return [ParticipantResponse(**p.to_dict()) for p in participants]
    except ElectionError as e:
        raise_http_error(e)
    except Exception as e:
        raise internal_error("listing participants", e)


@app.get(
    f"{API_PREFIX}/participants/eligibility",
    response_model=EligibilityResponse
)
async def check_eligibility(email: str = Query(..., description="Participant email")) -> EligibilityResponse:
    """
    Check whether an email may vote.

    Uses the same rule the ballot commit applies.
    """
    try:
        eligibility = await service.check_eligibility(email)
    except ElectionError as e:
        raise_http_error(e)
    except Exception as e:
        raise internal_error("checking eligibility", e)

    return EligibilityResponse(
        eligible=eligibility.eligible,
        reason=eligibility.reason,
        participant_id=eligibility.participant.id if eligibility.participant else None
    )


@app.get(
    f"{API_PREFIX}/catalog",
    response_model=list[OfficeInfo]
)
async def list_catalog() -> list[OfficeInfo]:
    """Get offices with their candidates in display order."""
    try:
        catalog = await service.list_catalog()
        return [OfficeInfo(**entry.to_dict()) for entry in catalog]
    except ElectionError as e:
        raise_http_error(e)
    except Exception as e:
        raise internal_error("listing catalog", e)


@app.post(
    f"{API_PREFIX}/ballots",
    response_model=BallotResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid ballot or unknown candidate"},
        404: {"model": ErrorResponse, "description": "Email not registered"},
        409: {"model": ErrorResponse, "description": "Already voted"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def submit_ballot(request: Request, ballot: BallotRequest) -> BallotResponse:
    """
    Submit one vote per office.

    - **email**: Registered participant email
    - **votes**: List of {office_id, candidate_id}, at most one per office

    The whole ballot is recorded or nothing is.
    """
    try:
        receipt = await service.submit_ballot(
            ballot.email,
            [vote.model_dump() for vote in ballot.votes]
        )
    except StorageUnavailableError as e:
        ballot_rejections.labels(reason=e.code).inc()
        logger.error(f"Ballot from {ballot.email} failed: {e.message}")
        raise_http_error(e)
    except ElectionError as e:
        ballot_rejections.labels(reason=e.code).inc()
        logger.info(f"Ballot from {ballot.email} rejected: {e.code}")
        raise_http_error(e)
    except Exception as e:
        raise internal_error("submitting ballot", e)

    ballots_committed.inc()
    return BallotResponse(
        participant_id=receipt.participant_id,
        votes_recorded=len(receipt.votes),
        cast_at=receipt.cast_at
    )


@app.get(
    f"{API_PREFIX}/results",
    response_model=list[TallyResponse]
)
async def get_results() -> list[TallyResponse]:
    """
    Get vote counts for every (office, candidate) pair.

    Candidates without votes are listed with a zero count.
    """
    try:
        rows = await service.get_tally()
        return [
            TallyResponse(
                office_name=row.office_name,
                candidate_name=row.candidate_name,
                vote_count=row.vote_count
            )
            for row in rows
        ]
    except ElectionError as e:
        raise_http_error(e)
    except Exception as e:
        raise internal_error("getting results", e)


@app.get(f"{API_PREFIX}/results/summary")
async def get_results_summary():
    """Get per-office totals and candidate percentages."""
    try:
        return await service.get_results_summary()
    except ElectionError as e:
        raise_http_error(e)
    except Exception as e:
        raise internal_error("getting results summary", e)


@app.get(
    f"{API_PREFIX}/health",
    response_model=HealthResponse,
    responses={
        503: {"model": HealthResponse, "description": "Service unhealthy"}
    }
)
async def health_check():
    """
    Check health of the service and its dependencies.

    The notifier is reported but does not make the service unhealthy.
    """
    store_healthy = await service.check_health()
    services = {
        "store": "connected" if store_healthy else "disconnected",
    }
    if settings.NOTIFIER_ENABLED:
        notifier_healthy = await notifier.check_health()
        services["rabbitmq"] = "connected" if notifier_healthy else "disconnected"

    response = HealthResponse(
        status="healthy" if store_healthy else "unhealthy",
        services=services,
        timestamp=get_current_timestamp()
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if store_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "register": f"{API_PREFIX}/participants",
            "eligibility": f"{API_PREFIX}/participants/eligibility?email={{email}}",
            "catalog": f"{API_PREFIX}/catalog",
            "submit_ballot": f"{API_PREFIX}/ballots",
            "results": f"{API_PREFIX}/results",
            "health": f"{API_PREFIX}/health",
            "metrics": "/metrics"
        }
    }


def run():
    import uvicorn

    uvicorn.run(
        "encuesta.ballot_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )


if __name__ == "__main__":
    run()
