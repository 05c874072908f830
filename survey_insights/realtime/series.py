"""Client-side shaping of time series for trend charts."""
from __future__ import annotations

import datetime
from typing import Any, Dict, List, Sequence

from survey_insights.reporting.models import TimePeriodBucket
from survey_insights.reporting.timeseries import normalize_interval, resolve_timezone, truncate
from survey_insights.timeutils import as_utc


def _step(local: datetime.datetime, unit: str) -> datetime.datetime:
    """Advance a local period start by one calendar *unit*."""
    if unit == "hour":
        # Step in absolute time so DST transitions neither repeat nor skip hours.
        return (local.astimezone(datetime.timezone.utc) + datetime.timedelta(hours=1)).astimezone(local.tzinfo)
    if unit == "week":
        return local + datetime.timedelta(days=7)
    if unit == "month":
        if local.month == 12:
            return local.replace(year=local.year + 1, month=1)
        return local.replace(month=local.month + 1)
    return local + datetime.timedelta(days=1)


def fill_gaps(
    buckets: Sequence[TimePeriodBucket],
    interval: str = "day",
    timezone: str = "UTC",
) -> List[TimePeriodBucket]:
    """Return a dense series from the first to the last observed period.

    Periods with no bucket get ``response_count=0``. Input order does not
    matter; the output is ascending.
    """

    if not buckets:
        return []
    unit = normalize_interval(interval)
    tz = resolve_timezone(timezone)

    # Keyed by UTC instant: same-zone datetimes ignore fold, which would merge
    # the repeated hour of a DST fall-back.
    observed = {as_utc(truncate(b.period_start, unit, tz)): b for b in buckets}
    cursor = min(observed).astimezone(tz)
    last = max(observed)

    dense: List[TimePeriodBucket] = []
    while as_utc(cursor) <= last:
        bucket = observed.get(as_utc(cursor))
        if bucket is None:
            bucket = TimePeriodBucket(period_start=as_utc(cursor), response_count=0)
        dense.append(bucket)
        # Re-truncate so wall-clock arithmetic across DST lands on the boundary.
        cursor = truncate(_step(cursor, unit), unit, tz)
    return dense


def format_for_chart(buckets: Sequence[TimePeriodBucket], timezone: str = "UTC") -> Dict[str, Any]:
    """Labels plus response-count and completion-time datasets for a line chart."""

    tz = resolve_timezone(timezone)
    return {
        "labels": [b.period_start.astimezone(tz).strftime("%b %d") for b in buckets],
        "datasets": [
            {"label": "Response Count", "data": [b.response_count for b in buckets]},
            {
                "label": "Avg Completion Time (s)",
                "data": [b.avg_completion_time for b in buckets],
            },
        ],
    }
