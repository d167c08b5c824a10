# Overview: Timestamp helpers shared by models, services, and request parsing.

"""
Every timestamp column holds naive UTC (SQLite has no timezone type, and
server defaults come from CURRENT_TIMESTAMP, which is UTC). Values are
normalized on the way in and rendered with a trailing 'Z' on the way out.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a timestamp sent by a client (request body or query string).

    Blank input means "not given" and returns None. A bare date is the
    start of that day; an offset or 'Z' suffix is converted to UTC.
    Raises ValueError for anything else, which callers turn into a 400.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(value: Optional[datetime]) -> Optional[str]:
    """Render a stored timestamp as '2026-03-15T18:30:00Z' (seconds precision)."""
    if value is None:
        return None
    return _as_naive_utc(value).replace(microsecond=0).isoformat() + "Z"


def to_date_str(value: Optional[date]) -> Optional[str]:
    """Render a due date / birth date (or a timestamp's day) as YYYY-MM-DD."""
    if value is None:
        return None
    return value.strftime("%Y-%m-%d")
