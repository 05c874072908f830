"""Analytics API - keyword/sentiment analysis, trends and live-update polling.

Endpoints (mounted under ``/api/analytics``):
- GET /survey/{survey_id}/analysis
- GET /survey/{survey_id}/timeseries
- GET /survey/{survey_id}/poll  (conditional GET: 204 / 304 / 200)
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, Response

from survey_insights import config
from survey_insights.service import AnalyticsService
from survey_insights.timeutils import EPOCH, http_date, parse_timestamp

logger = logging.getLogger(__name__)
router = APIRouter()

NO_CACHE = "no-cache, no-store, must-revalidate"


def get_service(request: Request) -> AnalyticsService:
    return request.app.state.service


ServiceDep = Annotated[AnalyticsService, Depends(get_service)]


# Helper functions


def _error(message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": message, "error": str(exc)},
    )


def _parse_top_n(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw else config.DEFAULT_TOP_N
    except ValueError:
        logger.warning("Ignoring invalid topN=%r", raw)
        return config.DEFAULT_TOP_N


def _split_csv(raw: Optional[str]) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


# Endpoints


@router.get("/survey/{survey_id}/analysis")
def get_survey_analysis(
    survey_id: str,
    service: ServiceDep,
    top_n: Optional[str] = Query(None, alias="topN"),
    summary_style: str = Query(config.DEFAULT_SUMMARY_STYLE, alias="summaryStyle"),
    extra_stopwords: Optional[str] = Query(None, alias="extraStopwords"),
):
    try:
        analysis = service.analyze(
            survey_id,
            top_n=_parse_top_n(top_n),
            extra_stopwords=_split_csv(extra_stopwords),
            summary_style=summary_style,
        )
    except Exception as exc:  # noqa: BLE001 – reported as 500 payload
        logger.exception("Error analyzing survey %s", survey_id)
        return _error("Failed to analyze survey", exc)

    return {"success": True, "surveyId": survey_id, "analysis": analysis.to_dict()}


@router.get("/survey/{survey_id}/timeseries")
def get_survey_time_series(
    survey_id: str,
    service: ServiceDep,
    interval: str = "day",
    tz: str = "UTC",
    start: Optional[str] = None,
    end: Optional[str] = None,
):
    try:
        buckets = service.time_series(survey_id, interval=interval, timezone=tz, start=start, end=end)
    except Exception as exc:  # noqa: BLE001 – reported as 500 payload
        logger.exception("Error building time series for survey %s", survey_id)
        return _error("Failed to build time series", exc)

    return {
        "success": True,
        "surveyId": survey_id,
        "interval": interval,
        "timezone": tz,
        "data": [bucket.to_dict() for bucket in buckets],
    }


@router.get("/survey/{survey_id}/poll")
def poll_survey(
    survey_id: str,
    service: ServiceDep,
    since: Optional[str] = None,
    if_modified_since: Optional[str] = Header(None),
):
    """Tell a polling client whether new responses arrived.

    The cutoff comes from ``If-Modified-Since`` or ``?since=`` (header wins),
    as epoch milliseconds, ISO-8601 or an HTTP date.
    """

    since_at = parse_timestamp(if_modified_since or since)
    try:
        result = service.poll_updates(survey_id, since_at)
    except Exception as exc:  # noqa: BLE001 – reported as 500 payload
        logger.exception("Error polling survey %s", survey_id)
        return _error("Failed to poll survey updates", exc)

    if result.last_response_at is None:
        return Response(status_code=204, headers={"Last-Modified": http_date(EPOCH)})

    headers = {"Last-Modified": http_date(result.last_response_at), "Cache-Control": NO_CACHE}
    if since_at is not None and since_at >= result.last_response_at:
        return Response(status_code=304, headers=headers)

    return JSONResponse(content=result.to_dict(), headers=headers)
