from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

"""
Business clock.

All persisted timestamps are naive datetimes in the business timezone
(BUSINESS_TIMEZONE, default Asia/Kolkata). Invoice years, GST periods and
the serial rollover are all evaluated on this clock, so an invoice issued
at 00:30 on 1 January local time belongs to the new year.
"""


def business_now(tz_name: str) -> datetime:
    """Current wall-clock time in the business timezone (naive)."""
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def to_business_naive(dt: datetime, tz_name: str) -> datetime:
    """
    Normalize a datetime to the naive business clock.

    - aware -> converted to the business timezone, tzinfo stripped
    - naive -> assumed to already be business time
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], tz_name: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 string onto the naive business clock.

    - None / "" -> None
    - "...Z" or "...+/-HH:MM" is converted to the business timezone
    - naive strings are taken as business time
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z (documents written by browsers use it)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    return to_business_naive(datetime.fromisoformat(s), tz_name)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat()


def year_bounds(year: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar year on the business clock."""
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    if month == 12:
        return datetime(year, 12, 1), datetime(year + 1, 1, 1)
    return datetime(year, month, 1), datetime(year, month + 1, 1)


def quarter_bounds(year: int, quarter: int) -> tuple[datetime, datetime]:
    """Calendar quarters: Q1 = Jan-Mar ... Q4 = Oct-Dec."""
    first_month = (quarter - 1) * 3 + 1
    start, _ = month_bounds(year, first_month)
    _, end = month_bounds(year, first_month + 2)
    return start, end


def utc_stamp() -> str:
    """ISO-8601 'Z' timestamp for the sync document's lastUpdated field."""
    now = datetime.now(timezone.utc).replace(microsecond=0)
    return now.isoformat().replace("+00:00", "Z")
