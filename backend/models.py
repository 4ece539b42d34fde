from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class SurveyResponse(Base):
    """
    Database model for survey responses.
    One row per respondent; email and client IP are unique so the database
    has the final say on duplicate submissions.
    """
    __tablename__ = "survey_responses"

    # Primary key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Respondent identification
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True, unique=True)

    # Dedicated questionnaire fields
    age = Column(String(50), nullable=False)
    education = Column(String(255), nullable=False)

    # NULL when the address is unknown or IP tracking is disabled
    ip_address = Column(String(64), nullable=True, index=True, unique=True)

    submitted_at = Column(DateTime(timezone=True), nullable=False)

    answers = relationship(
        "SurveyAnswer",
        order_by="SurveyAnswer.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<SurveyResponse(email={self.email}, submitted_at={self.submitted_at})>"


class SurveyAnswer(Base):
    """One answered questionnaire item, kept in questionnaire order."""
    __tablename__ = "survey_answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    response_id = Column(
        Integer,
        ForeignKey("survey_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False)
    question = Column(String(500), nullable=False)
    answer = Column(Text, nullable=False)

    def __repr__(self):
        return f"<SurveyAnswer(question={self.question!r}, answer={self.answer!r})>"
