"""Response and Answer tables of the survey response store."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from survey_insights.database import Base
from survey_insights.timeutils import utcnow


class Response(Base):
    """One submission by an invited participant (one per invitation)."""

    __tablename__ = "responses"
    __table_args__ = (Index("ix_responses_survey_submitted", "survey_id", "submitted_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(Uuid(as_uuid=True), nullable=False)
    respondent_id = Column(String(64), nullable=False, index=True)
    invitation_id = Column(String(64), nullable=False, unique=True)
    completion_time = Column(Float, nullable=True)  # seconds taken to complete
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    answers = relationship(
        "Answer",
        back_populates="response",
        cascade="all, delete-orphan",
        order_by="Answer.id",
    )

    def __repr__(self):
        return f"<Response {self.id} for survey {self.survey_id}>"


class Answer(Base):
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    response_id = Column(Integer, ForeignKey("responses.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(64), nullable=False)
    question_text = Column(Text, nullable=False)
    text = Column(String(500), nullable=False)
    answered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    response = relationship("Response", back_populates="answers")

    def __repr__(self):
        return f"<Answer {self.question_id} of response {self.response_id}>"
