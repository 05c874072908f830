"""HTTP client for the analytics API.

``AnalyticsClient.poll_updates`` has the ``fetch(survey_id, since)`` shape the
poll controller expects, so a remote dashboard can do::

    client = AnalyticsClient("https://insights.example.com")
    controller = PollController(survey_id, client.poll_updates, scheduler)
"""
from __future__ import annotations

import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from survey_insights import config
from survey_insights.analysis.sentiment import SentimentLabel, SentimentResult
from survey_insights.exceptions import AnalyticsClientError
from survey_insights.reporting.models import (
    AnalysisDetails,
    AnalysisResult,
    KeywordEntry,
    PollUpdate,
    TimePeriodBucket,
)
from survey_insights.timeutils import parse_timestamp

logger = logging.getLogger(__name__)

API_PREFIX = "/api/analytics"


class AnalyticsClient:
    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = config.HTTP_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _url(self, survey_id: Any, action: str) -> str:
        return f"{self.base_url}{API_PREFIX}/survey/{survey_id}/{action}"

    def _get(self, survey_id: Any, action: str, params: Dict[str, Any]) -> requests.Response:
        url = self._url(survey_id, action)
        logger.debug("GET %s params=%s", url, params)
        return self._session.get(url, params=params, timeout=self.timeout)

    @staticmethod
    def _json_or_raise(resp: requests.Response, what: str) -> Dict[str, Any]:
        if not resp.ok:
            try:
                body = resp.json()
                detail = body.get("error") or body.get("message")
            except ValueError:
                detail = resp.text
            raise AnalyticsClientError(
                f"Failed to {what}: HTTP {resp.status_code} {detail or ''}".strip(),
                status_code=resp.status_code,
            )
        return resp.json()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def poll_updates(self, survey_id: Any, since: Optional[datetime.datetime] = None) -> PollUpdate:
        """Ask whether *survey_id* has responses newer than *since*.

        Raises ``AnalyticsClientError`` on error statuses; network errors from
        ``requests`` propagate unchanged.
        """

        params = {"since": since.isoformat()} if since is not None else {}
        resp = self._get(survey_id, "poll", params)

        if resp.status_code == 304:
            return PollUpdate(updated=False, last_response_at=since)
        if resp.status_code == 204:
            return PollUpdate(updated=False, last_response_at=None)

        data = self._json_or_raise(resp, "poll survey updates")
        return PollUpdate(
            updated=bool(data.get("updated")),
            last_response_at=parse_timestamp(data.get("lastResponseAt")),
            new_count=data.get("newCount"),
        )

    def analysis(
        self,
        survey_id: Any,
        *,
        top_n: Optional[int] = None,
        summary_style: Optional[str] = None,
        extra_stopwords: Iterable[str] = (),
    ) -> AnalysisResult:
        params: Dict[str, Any] = {}
        if top_n is not None:
            params["topN"] = top_n
        if summary_style:
            params["summaryStyle"] = summary_style
        stopwords = ",".join(extra_stopwords)
        if stopwords:
            params["extraStopwords"] = stopwords

        data = self._json_or_raise(self._get(survey_id, "analysis", params), "fetch survey analysis")
        analysis = data.get("analysis") or {}
        sentiment = analysis.get("overallSentiment") or {}
        details = analysis.get("details") or {}
        return AnalysisResult(
            top_keywords=[
                KeywordEntry(term=k["term"], stem=k["stem"], count=int(k["count"]))
                for k in analysis.get("topKeywords", [])
            ],
            overall_sentiment=SentimentResult(
                label=SentimentLabel(sentiment.get("label", "neutral")),
                score=float(sentiment.get("score", 0.0)),
            ),
            details=AnalysisDetails(
                answers_count=int(details.get("answersCount", 0)),
                tokens=int(details.get("tokens", 0)),
            ),
            summary=analysis.get("summary", ""),
        )

    def time_series(
        self,
        survey_id: Any,
        *,
        interval: str = "day",
        timezone: str = "UTC",
        start: Optional[datetime.datetime] = None,
        end: Optional[datetime.datetime] = None,
    ) -> List[TimePeriodBucket]:
        params: Dict[str, Any] = {"interval": interval, "tz": timezone}
        if start is not None:
            params["start"] = start.isoformat()
        if end is not None:
            params["end"] = end.isoformat()

        data = self._json_or_raise(self._get(survey_id, "timeseries", params), "fetch time series")
        buckets = []
        for item in data.get("data", []):
            period_start = parse_timestamp(item.get("periodStart"))
            if period_start is None:
                continue
            buckets.append(
                TimePeriodBucket(
                    period_start=period_start,
                    response_count=int(item.get("responseCount") or 0),
                    avg_completion_time=float(item.get("avgCompletionTime") or 0.0),
                )
            )
        return buckets
