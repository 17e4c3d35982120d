from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Tuple

MINUTES_PER_DAY = 1440.0

# Smallest/largest year whose padded scan window stays inside datetime's range.
MIN_YEAR = 2
MAX_YEAR = 9998


def as_utc(dt: datetime) -> datetime:
    """
    Normalize to a naive datetime meaning UTC.

    Naive input is taken to be UTC already; aware input is converted.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)

def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def minutes_between(a: datetime, b: datetime) -> float:
    """Signed minutes from a to b."""
    return (b - a).total_seconds() / 60.0

def days_between(a: datetime, b: datetime) -> float:
    return minutes_between(a, b) / MINUTES_PER_DAY

def check_year(year: int) -> None:
    if not (MIN_YEAR <= year <= MAX_YEAR):
        raise ValueError(f"year must be in {MIN_YEAR}..{MAX_YEAR}, got {year}")

def year_window(year: int, pad: timedelta = timedelta(0)) -> Tuple[datetime, datetime]:
    """[Jan 1 of year - pad, Jan 1 of year+1 + pad]."""
    check_year(year)
    return datetime(year, 1, 1) - pad, datetime(year + 1, 1, 1) + pad

def format_iso(dt: datetime) -> str:
    """YYYY-MM-DDTHH:MM:SS, no zone suffix."""
    return as_utc(dt).isoformat(timespec="seconds")

def parse_iso(s: str) -> datetime:
    """
    Parse an ISO-8601 timestamp to naive UTC.

    Accepts seconds or minutes precision. A zone suffix, if present, is honored.
    """
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(s))
