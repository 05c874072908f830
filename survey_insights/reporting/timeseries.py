"""Bucket survey responses into calendar periods for trend charts.

Deployments differ in two ways that matter here: some databases offer a
native ``date_trunc`` and some do not, and some stores hold the survey
foreign key in a different representation than the survey's UUID key. The
aggregator therefore walks an ordered list of :class:`BucketStrategy`
objects. The first strategy returning a non-empty series wins; a strategy
that raises is logged and skipped. Only when every strategy raised does the
caller see an :class:`~survey_insights.exceptions.AggregationError`.
"""
from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from survey_insights.exceptions import AggregationError
from survey_insights.orm import Response
from survey_insights.reporting.models import TimePeriodBucket
from survey_insights.store import string_survey_match, typed_survey_match
from survey_insights.timeutils import as_utc, parse_timestamp

logger = logging.getLogger(__name__)

INTERVALS = ("hour", "day", "week", "month")
DEFAULT_INTERVAL = "day"

# Canonical per-unit keys for the formatting strategies (week = ISO year/week).
# Hour keys carry the UTC offset so the repeated hour of a DST fall-back stays two buckets.
_KEY_FORMATS = {
    "hour": "%Y-%m-%dT%H:00:00%z",
    "day": "%Y-%m-%dT00:00:00",
    "week": "%G-W%V",
    "month": "%Y-%m-01T00:00:00",
}


# ---------------------------------------------------------------------------
# Option normalization
# ---------------------------------------------------------------------------


def normalize_interval(interval: Optional[str]) -> str:
    unit = (interval or DEFAULT_INTERVAL).strip().lower()
    if unit not in INTERVALS:
        logger.warning("Unsupported interval %r; falling back to %r", interval, DEFAULT_INTERVAL)
        return DEFAULT_INTERVAL
    return unit


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; falling back to UTC", name)
        return ZoneInfo("UTC")


# ---------------------------------------------------------------------------
# Calendar arithmetic
# ---------------------------------------------------------------------------


def truncate(moment: datetime.datetime, unit: str, tz: ZoneInfo) -> datetime.datetime:
    """Return the start of the *unit* period containing *moment*, in *tz*.

    Weeks start on Monday (ISO weeks).
    """

    local = as_utc(moment).astimezone(tz)
    if unit == "hour":
        return local.replace(minute=0, second=0, microsecond=0)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    if unit == "week":
        monday = midnight.date() - datetime.timedelta(days=midnight.weekday())
        return datetime.datetime.combine(monday, datetime.time(), tzinfo=tz)
    if unit == "month":
        return midnight.replace(day=1)
    return midnight


def period_key(moment: datetime.datetime, unit: str, tz: ZoneInfo) -> str:
    return as_utc(moment).astimezone(tz).strftime(_KEY_FORMATS[unit])


def parse_period_key(key: str, unit: str, tz: ZoneInfo) -> datetime.datetime:
    """Invert :func:`period_key`, returning the aware period start in *tz*."""
    if unit == "hour":
        return datetime.datetime.strptime(key, "%Y-%m-%dT%H:%M:%S%z").astimezone(tz)
    if unit == "week":
        naive = datetime.datetime.strptime(f"{key}-1", "%G-W%V-%u")
    else:
        naive = datetime.datetime.strptime(key, "%Y-%m-%dT%H:%M:%S")
    return naive.replace(tzinfo=tz)


def _coerce_period(value: Any) -> datetime.datetime:
    # Drivers return datetimes; engines emulating date_trunc may return text.
    if isinstance(value, datetime.datetime):
        return as_utc(value)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Unrecognised period value: {value!r}")
    return parsed


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BucketQuery:
    survey_id: Any
    unit: str
    tz: ZoneInfo
    start: Optional[datetime.datetime] = None
    end: Optional[datetime.datetime] = None


def _filters(query: BucketQuery, typed: bool) -> list:
    match = typed_survey_match(query.survey_id) if typed else string_survey_match(query.survey_id)
    clauses = [match]
    if query.start is not None:
        clauses.append(Response.submitted_at >= query.start)
    if query.end is not None:
        clauses.append(Response.submitted_at <= query.end)
    return clauses


def trunc_buckets(session: Session, query: BucketQuery, *, typed: bool) -> List[TimePeriodBucket]:
    """Group in the database with ``date_trunc(unit, submitted_at, timezone)``."""

    periods = (
        select(
            func.date_trunc(query.unit, Response.submitted_at, query.tz.key).label("period"),
            Response.completion_time.label("completion_time"),
        )
        .where(*_filters(query, typed))
        .subquery()
    )
    stmt = (
        select(periods.c.period, func.count(), func.avg(periods.c.completion_time))
        .group_by(periods.c.period)
        .order_by(periods.c.period)
    )
    buckets = [
        TimePeriodBucket(
            period_start=_coerce_period(period),
            response_count=int(count),
            avg_completion_time=float(avg) if avg is not None else 0.0,
        )
        for period, count, avg in session.execute(stmt)
    ]
    buckets.sort(key=lambda bucket: bucket.period_start)
    return buckets


def format_buckets(session: Session, query: BucketQuery, *, typed: bool) -> List[TimePeriodBucket]:
    """Group by a formatted per-unit string key, for engines without ``date_trunc``."""

    stmt = select(Response.submitted_at, Response.completion_time).where(*_filters(query, typed))
    counts: Dict[str, int] = defaultdict(int)
    completion: Dict[str, List[float]] = defaultdict(list)
    for submitted_at, completion_time in session.execute(stmt):
        key = period_key(submitted_at, query.unit, query.tz)
        counts[key] += 1
        if completion_time is not None:
            completion[key].append(float(completion_time))

    buckets = []
    for key, count in counts.items():
        times = completion.get(key)
        buckets.append(
            TimePeriodBucket(
                period_start=as_utc(parse_period_key(key, query.unit, query.tz)),
                response_count=count,
                avg_completion_time=sum(times) / len(times) if times else 0.0,
            )
        )
    buckets.sort(key=lambda bucket: bucket.period_start)
    return buckets


@dataclass(frozen=True)
class BucketStrategy:
    """A named way of producing buckets; an empty result means "try the next one"."""

    name: str
    run: Callable[[Session, BucketQuery], List[TimePeriodBucket]]


DEFAULT_STRATEGIES: Sequence[BucketStrategy] = (
    BucketStrategy("trunc/typed", partial(trunc_buckets, typed=True)),
    BucketStrategy("trunc/string", partial(trunc_buckets, typed=False)),
    BucketStrategy("format/typed", partial(format_buckets, typed=True)),
    BucketStrategy("format/string", partial(format_buckets, typed=False)),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class TimeSeriesAggregator:
    """Run the bucketing strategies in order against a session factory."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        strategies: Sequence[BucketStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self._session_factory = session_factory
        self._strategies = tuple(strategies)

    def time_series(
        self,
        survey_id,
        *,
        interval: str = DEFAULT_INTERVAL,
        timezone: str = "UTC",
        start: Any = None,
        end: Any = None,
    ) -> List[TimePeriodBucket]:
        """Return response counts per period, ascending by ``period_start``.

        Raises
        ------
        AggregationError
            Only if every strategy raised.
        """

        query = BucketQuery(
            survey_id=survey_id,
            unit=normalize_interval(interval),
            tz=resolve_timezone(timezone),
            start=parse_timestamp(start),
            end=parse_timestamp(end),
        )

        failures = 0
        for strategy in self._strategies:
            try:
                # Fresh session per tier so an aborted transaction cannot leak.
                with self._session_factory() as session:
                    buckets = strategy.run(session, query)
            except Exception as exc:  # noqa: BLE001 – fall through to next tier
                failures += 1
                logger.warning(
                    "Time-series strategy %s failed for survey %s: %s",
                    strategy.name,
                    survey_id,
                    exc,
                )
                continue
            if buckets:
                logger.debug(
                    "timeseries_strategy",
                    extra={"survey_id": str(survey_id), "strategy": strategy.name},
                )
                return buckets

        if self._strategies and failures == len(self._strategies):
            raise AggregationError(f"Failed to build time series for survey {survey_id}")
        return []
