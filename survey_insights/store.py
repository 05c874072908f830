"""Read-only access to survey responses.

Survey identifiers are UUIDs, but not every writer persisted the foreign key
in the same representation. Queries therefore come in two flavours:

* *typed*: ``survey_id = :uuid`` against the indexed column;
* *string*: compares a normalized text form (lowercase hex, dashes removed)
  so rows written as plain strings still match.
"""
import datetime
import logging
import uuid
from typing import List, Optional

from sqlalchemy import ColumnElement, String, cast, func, select
from sqlalchemy.orm import Session, sessionmaker

from survey_insights.orm import Answer, Response
from survey_insights.timeutils import as_utc


def coerce_survey_key(survey_id) -> uuid.UUID:
    """Return *survey_id* as a UUID. Raises ValueError for other shapes."""
    if isinstance(survey_id, uuid.UUID):
        return survey_id
    return uuid.UUID(str(survey_id).strip())


def normalize_survey_key(survey_id) -> str:
    return str(survey_id).strip().replace("-", "").lower()


def typed_survey_match(survey_id) -> ColumnElement[bool]:
    return Response.survey_id == coerce_survey_key(survey_id)


def string_survey_match(survey_id) -> ColumnElement[bool]:
    normalized_column = func.lower(func.replace(cast(Response.survey_id, String), "-", ""))
    return normalized_column == normalize_survey_key(survey_id)


class ResponseStore:
    """Queries the analytics engine needs from the response store."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._logger = logging.getLogger(__name__)

    def session(self) -> Session:
        """Open a new short-lived session (use as a context manager)."""
        return self._session_factory()

    def survey_match(self, session: Session, survey_id) -> ColumnElement[bool]:
        """Typed match when it finds rows, string match otherwise.

        Surveys whose responses were all written as plain strings are only
        reachable through the string comparison.
        """
        try:
            typed = typed_survey_match(survey_id)
        except ValueError:
            return string_survey_match(survey_id)
        if session.scalar(select(Response.id).where(typed).limit(1)) is not None:
            return typed
        self._logger.debug("survey_string_match", extra={"survey_id": str(survey_id)})
        return string_survey_match(survey_id)

    def answer_texts(self, survey_id) -> List[str]:
        """Return every answer text of the survey's responses, oldest first."""
        with self.session() as session:
            stmt = (
                select(Answer.text)
                .join(Response, Answer.response_id == Response.id)
                .where(self.survey_match(session, survey_id))
                .order_by(Response.submitted_at, Answer.id)
            )
            texts = list(session.scalars(stmt))
        self._logger.debug(
            "answers_loaded", extra={"survey_id": str(survey_id), "answers": len(texts)}
        )
        return texts

    def latest_submission(self, survey_id) -> Optional[datetime.datetime]:
        """Return the most recent ``submitted_at`` or ``None`` without responses."""
        with self.session() as session:
            stmt = select(func.max(Response.submitted_at)).where(self.survey_match(session, survey_id))
            latest = session.scalar(stmt)
        return as_utc(latest) if latest is not None else None

    def count_since(self, survey_id, since: datetime.datetime) -> int:
        """Return how many responses were submitted strictly after *since*."""
        with self.session() as session:
            stmt = (
                select(func.count(Response.id))
                .where(self.survey_match(session, survey_id))
                .where(Response.submitted_at > as_utc(since))
            )
            return int(session.scalar(stmt) or 0)
