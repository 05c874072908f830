"""Shared fixtures: in-memory response stores and a deterministic scheduler."""
from __future__ import annotations

import datetime
import heapq
import itertools
import uuid
from typing import Callable, Iterable, Optional
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import event, text
from sqlalchemy.pool import StaticPool

from survey_insights.database import Base, create_db_engine, make_session_factory
from survey_insights.orm import Answer, Response
from survey_insights.reporting.timeseries import truncate
from survey_insights.service import AnalyticsService

UTC = datetime.timezone.utc


def _sqlite_date_trunc(unit: str, value: Optional[str], tz_name: str) -> Optional[str]:
    """SQLite stand-in for ``date_trunc(unit, timestamp, zone)``."""
    if value is None:
        return None
    moment = datetime.datetime.fromisoformat(value)
    return truncate(moment, unit, ZoneInfo(tz_name)).isoformat()


def make_engine(native_trunc: bool = False):
    engine = create_db_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    if native_trunc:

        @event.listens_for(engine, "connect")
        def _register(dbapi_conn, _record):
            dbapi_conn.create_function("date_trunc", 3, _sqlite_date_trunc)

    Base.metadata.create_all(engine)
    return engine


class ResponseFactory:
    """Inserts responses the way the survey application would."""

    def __init__(self, engine) -> None:
        self.engine = engine
        self.session_factory = make_session_factory(engine)
        self._invitations = itertools.count(1)

    def add(
        self,
        survey_id: uuid.UUID,
        submitted_at: datetime.datetime,
        answers: Iterable[str] = ("Fine",),
        completion_time: Optional[float] = 60.0,
    ) -> None:
        n = next(self._invitations)
        response = Response(
            survey_id=survey_id,
            respondent_id=f"user-{n}",
            invitation_id=f"inv-{n}",
            completion_time=completion_time,
            submitted_at=submitted_at.astimezone(UTC),
        )
        for i, text_ in enumerate(answers):
            response.answers.append(
                Answer(question_id=f"q{i}", question_text=f"Question {i}", text=text_)
            )
        with self.session_factory() as session:
            session.add(response)
            session.commit()

    def add_legacy(
        self,
        survey_id: uuid.UUID,
        submitted_at: datetime.datetime,
        answers: Iterable[str] = (),
        completion_time: Optional[float] = 60.0,
    ) -> None:
        """Insert a row whose survey_id was written as a dashed string."""
        n = next(self._invitations)
        at = submitted_at.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S.%f")
        with self.engine.begin() as conn:
            result = conn.execute(
                text(
                    "INSERT INTO responses "
                    "(survey_id, respondent_id, invitation_id, completion_time, submitted_at) "
                    "VALUES (:sid, :rid, :inv, :ct, :at)"
                ),
                {
                    "sid": str(survey_id),
                    "rid": f"user-{n}",
                    "inv": f"inv-{n}",
                    "ct": completion_time,
                    "at": at,
                },
            )
            for i, text_ in enumerate(answers):
                conn.execute(
                    text(
                        "INSERT INTO answers "
                        "(response_id, question_id, question_text, text, answered_at) "
                        "VALUES (:rid, :qid, :qtext, :text, :at)"
                    ),
                    {
                        "rid": result.lastrowid,
                        "qid": f"q{i}",
                        "qtext": f"Question {i}",
                        "text": text_,
                        "at": at,
                    },
                )


@pytest.fixture
def engine():
    eng = make_engine()
    yield eng
    eng.dispose()


@pytest.fixture
def trunc_engine():
    eng = make_engine(native_trunc=True)
    yield eng
    eng.dispose()


@pytest.fixture
def responses(engine) -> ResponseFactory:
    return ResponseFactory(engine)


@pytest.fixture
def trunc_responses(trunc_engine) -> ResponseFactory:
    return ResponseFactory(trunc_engine)


@pytest.fixture
def service(engine) -> AnalyticsService:
    return AnalyticsService.from_engine(engine)


@pytest.fixture
def survey_id() -> uuid.UUID:
    return uuid.uuid4()


class FakeScheduler:
    """Manual-clock timer backend; tasks run synchronously in :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list = []
        self._ids = itertools.count()
        self._cancelled: set[int] = set()

    def schedule(self, delay_seconds: float, callback: Callable, *args) -> int:
        task_id = next(self._ids)
        heapq.heappush(self._queue, (self.now + delay_seconds, task_id, callback, args))
        return task_id

    def cancel(self, task_id: int) -> bool:
        if any(item[1] == task_id for item in self._queue) and task_id not in self._cancelled:
            self._cancelled.add(task_id)
            return True
        return False

    def pending(self) -> list[tuple[float, int]]:
        """(run_at, task_id) of tasks still waiting, earliest first."""
        return sorted(
            (run_at, task_id)
            for run_at, task_id, _cb, _args in self._queue
            if task_id not in self._cancelled
        )

    def advance(self, seconds: float = 0.0) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            run_at, task_id, callback, args = heapq.heappop(self._queue)
            if task_id in self._cancelled:
                self._cancelled.discard(task_id)
                continue
            self.now = max(self.now, run_at)
            callback(*args)
        self.now = target


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()
