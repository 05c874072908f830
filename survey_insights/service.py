"""Analytics operations exposed to dashboards, reports and the live-update UI.

:class:`AnalyticsService` binds the analysis pipeline and the time-series
aggregator to one response store. It holds no per-request state, so a single
instance can serve concurrent requests.
"""
from __future__ import annotations

import datetime
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy import Engine

from survey_insights import config
from survey_insights.database import make_session_factory
from survey_insights.reporting.aggregator import analyze_answers
from survey_insights.reporting.models import AnalysisResult, PollUpdate, TimePeriodBucket
from survey_insights.reporting.timeseries import TimeSeriesAggregator
from survey_insights.store import ResponseStore
from survey_insights.timeutils import parse_timestamp

logger = logging.getLogger(__name__)


class AnalyticsService:
    def __init__(self, store: ResponseStore, timeseries: TimeSeriesAggregator) -> None:
        self._store = store
        self._timeseries = timeseries

    @classmethod
    def from_engine(cls, engine: Engine) -> "AnalyticsService":
        session_factory = make_session_factory(engine)
        return cls(ResponseStore(session_factory), TimeSeriesAggregator(session_factory))

    def analyze(
        self,
        survey_id,
        *,
        top_n: int = config.DEFAULT_TOP_N,
        extra_stopwords: Iterable[str] = (),
        summary_style: str = config.DEFAULT_SUMMARY_STYLE,
    ) -> AnalysisResult:
        """Keyword frequency, overall sentiment and summary for a survey."""
        answers = self._store.answer_texts(survey_id)
        result = analyze_answers(
            answers,
            top_n=top_n,
            extra_stopwords=extra_stopwords,
            summary_style=summary_style,
        )
        logger.info(
            "Analyzed survey %s: answers=%d sentiment=%s",
            survey_id,
            result.details.answers_count,
            result.overall_sentiment.label.value,
        )
        return result

    def poll_updates(self, survey_id, since: Any = None) -> PollUpdate:
        """Report whether the survey received responses after *since*.

        Without any responses the answer is "not updated, no timestamp".
        Without *since* the latest timestamp is reported as an update so a
        fresh client can synchronise.
        """

        latest = self._store.latest_submission(survey_id)
        if latest is None:
            return PollUpdate(updated=False, last_response_at=None)

        cutoff: Optional[datetime.datetime] = parse_timestamp(since)
        if cutoff is None:
            return PollUpdate(updated=True, last_response_at=latest)

        new_count = self._store.count_since(survey_id, cutoff)
        if new_count > 0:
            return PollUpdate(updated=True, last_response_at=latest, new_count=new_count)
        return PollUpdate(updated=False, last_response_at=latest)

    def time_series(
        self,
        survey_id,
        *,
        interval: str = "day",
        timezone: str = "UTC",
        start: Any = None,
        end: Any = None,
    ) -> List[TimePeriodBucket]:
        return self._timeseries.time_series(
            survey_id, interval=interval, timezone=timezone, start=start, end=end
        )
