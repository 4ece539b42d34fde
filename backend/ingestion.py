"""
Ingestion Service

Validates candidate survey responses, rejects duplicates by email and client
IP, and persists accepted responses through the ResponseStore.
"""

from datetime import datetime, timezone
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from config import TRACK_IP
from errors import (
    DuplicateEmail,
    DuplicateIp,
    StoreUnavailable,
    UniqueConstraintViolation,
    ValidationError,
)
from schemas import StoredSurveyResponse, SurveyResponseInput
from store import ResponseStore

logger = logging.getLogger(__name__)


def validate_candidate(candidate) -> SurveyResponseInput:
    """
    Parse a raw mapping into a SurveyResponseInput.

    Raises:
        ValidationError: With one entry per offending field
    """
    if isinstance(candidate, SurveyResponseInput):
        return candidate

    try:
        return SurveyResponseInput.model_validate(candidate)
    except PydanticValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in e.errors()
        ]
        raise ValidationError(errors) from e


class IngestionService:
    """Accepts at most one response per email, and per client IP when tracking is on."""

    def __init__(self, store: ResponseStore, track_ip: bool = TRACK_IP):
        self.store = store
        self.track_ip = track_ip

    def submit(self, candidate) -> StoredSurveyResponse:
        """
        Validate and persist a survey response.

        Args:
            candidate: A SurveyResponseInput or a mapping with the same fields

        Returns:
            StoredSurveyResponse: The persisted response

        Raises:
            ValidationError: If a required field is missing or blank
            DuplicateEmail: If a response with this email already exists
            DuplicateIp: If IP tracking is on and this IP already submitted
            StoreUnavailable: If the database could not be reached
        """
        candidate = validate_candidate(candidate)
        if not self.track_ip and candidate.ip_address is not None:
            candidate = candidate.model_copy(update={"ip_address": None})

        try:
            if self.store.find_by_email(candidate.email) is not None:
                raise DuplicateEmail(candidate.email)

            if candidate.ip_address and self.store.find_by_ip(candidate.ip_address) is not None:
                raise DuplicateIp(candidate.ip_address)

            stored = self.store.insert(candidate, submitted_at=datetime.now(timezone.utc))

        except UniqueConstraintViolation as e:
            # Another submission won the race between the check and the insert
            if e.field == "ipAddress":
                raise DuplicateIp(candidate.ip_address) from e
            raise DuplicateEmail(candidate.email) from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving survey response: {str(e)}", exc_info=True)
            raise StoreUnavailable("Could not save the survey response") from e

        logger.info(f"Stored survey response for {stored.email}")
        return stored

    def has_submitted(self, ip_address) -> bool:
        """Return True if a stored response carries exactly this IP address."""
        if not ip_address:
            return False

        try:
            return self.store.find_by_ip(ip_address) is not None
        except SQLAlchemyError as e:
            logger.error(f"Error looking up IP address: {str(e)}", exc_info=True)
            raise StoreUnavailable("Could not look up the IP address") from e
