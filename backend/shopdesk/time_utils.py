from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime (or plain YYYY-MM-DD date) to a UTC-naive datetime.

    - None / "" -> None
    - naive input is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 with a trailing 'Z' (naive is treated as UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def format_date(value: date) -> str:
    """Display format used on documents, e.g. 'Mar 05, 2026'."""
    return value.strftime("%b %d, %Y")


def format_date_input(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def parse_date(value: str | None) -> datetime:
    """Parse YYYY-MM-DD; anything unparseable falls back to today."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d")
    except ValueError:
        now = utcnow()
        return datetime(now.year, now.month, now.day)


def month_key(value: datetime) -> str:
    return value.strftime("%Y-%m")


def parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """
    Query-string date range as [start, end).

    A bare YYYY-MM-DD end covers that whole day. Raises ValueError for
    malformed input.
    """
    start_dt = parse_iso_datetime(start)
    end_dt = parse_iso_datetime(end)
    if end_dt is not None and end and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1)
    return start_dt, end_dt
