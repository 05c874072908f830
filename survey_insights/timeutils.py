"""Timestamp helpers shared by the store, the API and the poll client."""
from __future__ import annotations

import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Optional

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Return *value* as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def parse_timestamp(raw: Any) -> Optional[datetime.datetime]:
    """Parse *raw* into an aware UTC datetime, or ``None`` if it is unusable.

    Accepts datetimes, epoch milliseconds (int or digit string), ISO-8601
    strings (a trailing ``Z`` included) and RFC 1123 HTTP dates.
    """

    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime.datetime):
        return as_utc(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return EPOCH + datetime.timedelta(milliseconds=raw)

    text = str(raw).strip()
    if text.isdigit():
        return EPOCH + datetime.timedelta(milliseconds=int(text))
    try:
        iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        return as_utc(datetime.datetime.fromisoformat(iso))
    except ValueError:
        pass
    try:
        return as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return None


def http_date(value: datetime.datetime) -> str:
    """Format *value* as an RFC 1123 date for ``Last-Modified`` headers."""
    return as_utc(value).strftime("%a, %d %b %Y %H:%M:%S GMT")
