"""
Response Store

SQLAlchemy backed persistence for survey responses. The store owns no
connection of its own: it works on the session handed to it and leaves the
session lifecycle to the caller.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import UniqueConstraintViolation
from models import SurveyAnswer, SurveyResponse
from schemas import AnswerItem, StoredSurveyResponse, SurveyResponseInput

logger = logging.getLogger(__name__)

# The first of these to appear names the violated column. The submitted values
# only follow it, in the "Key (column)=(value)" detail line.
UNIQUE_COLUMN = re.compile(
    r"ix_survey_responses_(email|ip_address)\b"
    r"|survey_responses\.(email|ip_address)\b"
    r"|Key \((email|ip_address)\)="
)
UNIQUE_FIELDS = {"email": "email", "ip_address": "ipAddress"}


def to_stored(row: SurveyResponse) -> StoredSurveyResponse:
    """Convert an ORM row into the domain shape, dropping storage identifiers."""
    submitted_at = row.submitted_at
    # SQLite hands back naive datetimes; they were written as UTC
    if submitted_at is not None and submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)

    return StoredSurveyResponse(
        name=row.name,
        email=row.email,
        age=row.age,
        education=row.education,
        answers=[AnswerItem(question=a.question, answer=a.answer) for a in row.answers],
        ip_address=row.ip_address,
        submitted_at=submitted_at,
    )


class ResponseStore:
    """Insert and lookup operations over the survey_responses table."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[StoredSurveyResponse]:
        row = self.db.query(SurveyResponse).filter(
            SurveyResponse.email == email
        ).first()
        return to_stored(row) if row else None

    def find_by_ip(self, ip_address: str) -> Optional[StoredSurveyResponse]:
        row = self.db.query(SurveyResponse).filter(
            SurveyResponse.ip_address == ip_address
        ).first()
        return to_stored(row) if row else None

    def insert(self, candidate: SurveyResponseInput, submitted_at: datetime) -> StoredSurveyResponse:
        """
        Persist a new response.

        Raises:
            UniqueConstraintViolation: If the database already holds the email or IP
            SQLAlchemyError: For any other database failure
        """
        row = SurveyResponse(
            name=candidate.name,
            email=candidate.email,
            age=candidate.age,
            education=candidate.education,
            ip_address=candidate.ip_address,
            submitted_at=submitted_at,
            answers=[
                SurveyAnswer(position=position, question=item.question, answer=item.answer)
                for position, item in enumerate(candidate.answers)
            ],
        )
        self.db.add(row)

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            field = self._violated_field(e, candidate)
            logger.warning(f"Insert rejected by unique constraint on {field}")
            raise UniqueConstraintViolation(field) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(row)
        return to_stored(row)

    def find_all(self) -> List[StoredSurveyResponse]:
        rows = self.db.query(SurveyResponse).order_by(SurveyResponse.id).all()
        return [to_stored(row) for row in rows]

    def _violated_field(self, error: IntegrityError, candidate: SurveyResponseInput) -> str:
        # psycopg2 exposes the constraint name; SQLite only has the message
        diag = getattr(error.orig, "diag", None)
        source = getattr(diag, "constraint_name", None) or str(error.orig)

        match = UNIQUE_COLUMN.search(source)
        if match:
            column = next(group for group in match.groups() if group)
            if column in UNIQUE_FIELDS:
                return UNIQUE_FIELDS[column]

        if self.find_by_email(candidate.email) is not None:
            return "email"
        return "ipAddress"
