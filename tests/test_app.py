# tests/test_app.py
import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from survey_insights.app import create_app
from survey_insights.exceptions import AggregationError
from survey_insights.timeutils import http_date

UTC = datetime.timezone.utc
T0 = datetime.datetime(2024, 5, 6, 12, 0, tzinfo=UTC)


@pytest.fixture
def client(service) -> TestClient:
    return TestClient(create_app(service))


def _poll_url(survey_id) -> str:
    return f"/api/analytics/survey/{survey_id}/poll"


# --- Poll endpoint --- #


def test_poll_without_responses_is_no_content(client, survey_id):
    resp = client.get(_poll_url(survey_id))
    assert resp.status_code == 204
    assert resp.headers["Last-Modified"] == "Thu, 01 Jan 1970 00:00:00 GMT"


def test_poll_without_since_reports_latest(client, responses, survey_id):
    responses.add(survey_id, T0)

    resp = client.get(_poll_url(survey_id))

    assert resp.status_code == 200
    assert resp.json() == {"updated": True, "lastResponseAt": T0.isoformat()}
    assert resp.headers["Last-Modified"] == http_date(T0)
    assert resp.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"


def test_poll_with_new_responses(client, responses, survey_id):
    responses.add(survey_id, T0)
    responses.add(survey_id, T0 + datetime.timedelta(minutes=1))
    since_ms = int(T0.timestamp() * 1000)

    resp = client.get(_poll_url(survey_id), params={"since": str(since_ms)})

    assert resp.status_code == 200
    body = resp.json()
    assert body["updated"] is True
    assert body["newCount"] == 1


def test_poll_not_modified(client, responses, survey_id):
    responses.add(survey_id, T0)

    resp = client.get(_poll_url(survey_id), params={"since": "2024-05-06T12:00:00Z"})

    assert resp.status_code == 304
    assert resp.headers["Last-Modified"] == http_date(T0)


def test_if_modified_since_header_wins_over_query(client, responses, survey_id):
    responses.add(survey_id, T0)

    resp = client.get(
        _poll_url(survey_id),
        params={"since": "2024-01-01T00:00:00Z"},
        headers={"If-Modified-Since": http_date(T0)},
    )

    assert resp.status_code == 304


def test_poll_error_payload(service, survey_id):
    broken = MagicMock(wraps=service)
    broken.poll_updates.side_effect = RuntimeError("connection reset")
    client = TestClient(create_app(broken))

    resp = client.get(_poll_url(survey_id))

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "message": "Failed to poll survey updates",
        "error": "connection reset",
    }


# --- Analysis endpoint --- #


def test_analysis(client, responses, survey_id):
    responses.add(survey_id, T0, answers=["Great onboarding", "Onboarding was great"])

    resp = client.get(f"/api/analytics/survey/{survey_id}/analysis", params={"topN": "1"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["surveyId"] == str(survey_id)
    analysis = body["analysis"]
    assert analysis["topKeywords"] == [{"term": "great", "stem": "great", "count": 2}]
    assert analysis["details"] == {"answersCount": 2, "tokens": 4}
    assert analysis["overallSentiment"]["label"] == "positive"


def test_analysis_extra_stopwords_and_bad_top_n(client, responses, survey_id):
    responses.add(survey_id, T0, answers=["Acme onboarding rocks"])

    resp = client.get(
        f"/api/analytics/survey/{survey_id}/analysis",
        params={"topN": "lots", "extraStopwords": "acme, rocks"},
    )

    assert resp.status_code == 200
    terms = [k["term"] for k in resp.json()["analysis"]["topKeywords"]]
    assert terms == ["onboarding"]


def test_analysis_empty_survey(client, survey_id):
    resp = client.get(f"/api/analytics/survey/{survey_id}/analysis")
    analysis = resp.json()["analysis"]
    assert analysis["details"]["answersCount"] == 0
    assert analysis["overallSentiment"] == {"label": "neutral", "score": 0.0}


# --- Time series endpoint --- #


def test_timeseries(client, responses, survey_id):
    responses.add(survey_id, T0, completion_time=30.0)
    responses.add(survey_id, T0 + datetime.timedelta(days=2), completion_time=90.0)

    resp = client.get(
        f"/api/analytics/survey/{survey_id}/timeseries", params={"interval": "day", "tz": "UTC"}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["interval"] == "day"
    assert body["timezone"] == "UTC"
    assert [d["responseCount"] for d in body["data"]] == [1, 1]
    assert body["data"][0] == {
        "periodStart": "2024-05-06T00:00:00+00:00",
        "responseCount": 1,
        "avgCompletionTime": 30.0,
    }


def test_timeseries_failure(service, survey_id):
    broken = MagicMock(wraps=service)
    broken.time_series.side_effect = AggregationError("all strategies failed")
    client = TestClient(create_app(broken))

    resp = client.get(f"/api/analytics/survey/{survey_id}/timeseries")

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "all strategies failed"
