from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


REPORT_PERIODS = ("today", "week", "month", "year")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped

    Raises ValueError for anything else.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(dt: datetime) -> datetime:
    return start_of_day(dt).replace(day=1)


def period_range(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """
    Resolve a named report period to a [start, end) window in UTC.

    Weeks start on Sunday.
    """
    now = now or utcnow()
    today = start_of_day(now)

    if period == "today":
        return today, today + timedelta(days=1)
    if period == "week":
        # weekday(): Monday=0 .. Sunday=6
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        return week_start, week_start + timedelta(days=7)
    if period == "month":
        month_start = start_of_month(now)
        if month_start.month == 12:
            return month_start, month_start.replace(year=month_start.year + 1, month=1)
        return month_start, month_start.replace(month=month_start.month + 1)
    if period == "year":
        year_start = today.replace(month=1, day=1)
        return year_start, year_start.replace(year=year_start.year + 1)

    raise ValueError(f"unknown period {period!r}")
