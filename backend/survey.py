from fastapi import APIRouter, HTTPException, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from database import get_db
from store import ResponseStore
from ingestion import IngestionService
from aggregation import AggregationService
from config import SURVEY_CONFIG
from errors import (
    DuplicateEmail,
    DuplicateIp,
    StoreUnavailable,
    UndefinedCorrelation,
    ValidationError,
)
from schemas import (
    AggregateSummary,
    CauseFrequency,
    CorrelationReport,
    IpCheck,
    StoredSurveyResponse,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["survey"])

EMAIL_TAKEN_MESSAGE = "This email has already been used to submit a survey."
IP_TAKEN_MESSAGE = "A survey has already been submitted from this network."
UNAVAILABLE_MESSAGE = "The survey service is temporarily unavailable. Please try again later."
SUBMIT_FAILED_MESSAGE = "An error occurred while submitting the survey."


def get_store(db: Session = Depends(get_db)) -> ResponseStore:
    return ResponseStore(db)


def get_ingestion_service(store: ResponseStore = Depends(get_store)) -> IngestionService:
    return IngestionService(store)


def get_aggregation_service(store: ResponseStore = Depends(get_store)) -> AggregationService:
    return AggregationService(store)


def client_ip(request: Request) -> Optional[str]:
    """Best guess at the caller's address, honouring a reverse proxy header."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


@router.post(
    "/responses",
    response_model=StoredSurveyResponse,
    response_model_exclude_none=True,
    status_code=201
)
async def submit_response(
    request: Request,
    service: IngestionService = Depends(get_ingestion_service)
):
    """
    Store one survey response.
    The client address is recorded when the form did not send one.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")

    if isinstance(payload, dict) and not (payload.get("ipAddress") or payload.get("ip_address")):
        payload["ipAddress"] = client_ip(request)

    try:
        return service.submit(payload)

    except DuplicateEmail:
        raise HTTPException(status_code=409, detail=EMAIL_TAKEN_MESSAGE)
    except DuplicateIp:
        raise HTTPException(status_code=409, detail=IP_TAKEN_MESSAGE)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)
    except Exception as e:
        logger.error(f"Error submitting survey response: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=SUBMIT_FAILED_MESSAGE)


@router.get("/responses/check-ip", response_model=IpCheck)
async def check_ip(
    request: Request,
    ip: Optional[str] = None,
    service: IngestionService = Depends(get_ingestion_service)
):
    """
    Tell the form whether this address already submitted, so it can skip
    showing the questionnaire.
    """
    ip_address = ip or client_ip(request)
    try:
        return IpCheck(ip_address=ip_address, has_submitted=service.has_submitted(ip_address))
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)


@router.get("/stats", response_model=AggregateSummary)
async def get_stats(service: AggregationService = Depends(get_aggregation_service)):
    """Answer tallies, response count, average age and education breakdown."""
    try:
        return service.compute_stats()
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)


@router.get("/stats/correlation", response_model=CorrelationReport)
async def get_correlation(
    x: str = Query(..., min_length=1),
    y: str = Query(..., min_length=1),
    service: AggregationService = Depends(get_aggregation_service)
):
    try:
        return service.correlation(x, y)
    except UndefinedCorrelation as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)


@router.get("/stats/causes", response_model=List[CauseFrequency])
async def get_cause_frequencies(
    question: str = Query(..., min_length=1),
    service: AggregationService = Depends(get_aggregation_service)
):
    try:
        return service.cause_frequencies(question)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)


@router.get("/questionnaire")
async def get_questionnaire():
    """The questionnaire definition shared with the frontend."""
    return SURVEY_CONFIG
