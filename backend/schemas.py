from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and serializes to camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnswerItem(CamelModel):
    """Represents a single answered questionnaire item."""
    question: str = Field(min_length=1, max_length=500)
    answer: str = Field(min_length=1)

    @field_validator("question", "answer")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SurveyResponseInput(CamelModel):
    """A candidate response as submitted by the questionnaire form."""
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    age: str = Field(min_length=1, max_length=50)
    education: str = Field(min_length=1, max_length=255)
    answers: List[AnswerItem]
    ip_address: Optional[str] = Field(default=None, max_length=64)

    @field_validator("name", "email", "age", "education")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("ip_address")
    @classmethod
    def blank_ip_is_absent(cls, value: Optional[str]) -> Optional[str]:
        """An empty address means the client IP is unknown."""
        if value is None:
            return None
        return value.strip() or None


class StoredSurveyResponse(CamelModel):
    """A persisted response, stripped of storage identifiers."""
    name: str
    email: str
    age: str
    education: str
    answers: List[AnswerItem]
    ip_address: Optional[str] = None
    submitted_at: datetime


class AnswerCount(CamelModel):
    answer: str
    count: int


class QuestionStat(CamelModel):
    """Answer tally for one question, answers in first-seen order."""
    question_id: int
    question: str
    answers: List[AnswerCount]


class EducationStat(CamelModel):
    level: str
    count: int


class AggregateSummary(CamelModel):
    """Statistics derived from the full set of stored responses."""
    question_stats: List[QuestionStat]
    total_responses: int
    average_age: int
    education_stats: List[EducationStat]


class CorrelationReport(CamelModel):
    x: str
    y: str
    pairs: int
    coefficient: float


class CauseFrequency(CamelModel):
    cause: str
    count: int


class IpCheck(CamelModel):
    ip_address: Optional[str] = None
    has_submitted: bool
