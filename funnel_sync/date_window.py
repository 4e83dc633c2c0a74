"""
Date window resolution.

All dates are UTC calendar dates rendered as ``YYYY-MM-DD``. "Today" can be
injected so the windows are deterministic in tests.
"""
import re
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, List, Optional

from dateutil import parser as date_parser

from funnel_sync.exceptions import InvalidRangeError

DATE_FORMAT = "%Y-%m-%d"
# Missing parts are never filled from the current date
PARSE_DEFAULT = datetime(1900, 1, 1)
_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")


def _parse_loose(raw: str) -> Optional[datetime]:
    """dateutil parse of a string carrying a 4-digit year, else None."""
    if not _YEAR_RE.search(raw):
        return None
    try:
        return date_parser.parse(raw, default=PARSE_DEFAULT)
    except (ValueError, OverflowError):
        return None


class WindowMode(str, Enum):
    YESTERDAY = "yesterday"
    LAST_N_DAYS = "last_n_days"
    RANGE = "range"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string, raising InvalidRangeError otherwise."""
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidRangeError(f"Invalid date {value!r}; use YYYY-MM-DD") from None


def plus_days(date_str: str, n: int) -> str:
    return format_date(parse_date(date_str) + timedelta(days=n))


def normalize_date_str(value: Any) -> str:
    """
    Best-effort normalization of a cell or CSV value to ``YYYY-MM-DD``.

    Accepts date/datetime objects and strings such as '2025-08-25',
    '2025/08/25' or '2025-08-25T10:00:00Z'. Unparseable strings fall back
    to their first 10 characters.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return format_date(value.date())
    if isinstance(value, date):
        return format_date(value)

    raw = str(value).strip()
    if not raw:
        return ""
    parsed = _parse_loose(raw)
    if parsed is None:
        return raw[:10]
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return format_date(parsed.date())


def yesterday(today: Optional[date] = None) -> date:
    return (today or utc_today()) - timedelta(days=1)


def last_n_days(n: int, today: Optional[date] = None) -> List[date]:
    """N dates ending at yesterday, oldest first."""
    if not n or n < 1:
        n = 1
    end = yesterday(today)
    return [end - timedelta(days=i) for i in range(n - 1, -1, -1)]


def date_range(start: str, end: str) -> List[date]:
    """Inclusive contiguous dates from start to end."""
    start_day = parse_date(start)
    end_day = parse_date(end)
    if start_day > end_day:
        raise InvalidRangeError(f"startDate must be <= endDate ({start} > {end})")
    return [start_day + timedelta(days=i) for i in range((end_day - start_day).days + 1)]


def resolve_window(
    mode: WindowMode,
    *,
    days: Optional[int] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    today: Optional[date] = None
) -> List[date]:
    """
    Resolve a processing window to an ordered list of dates.

    Args:
        mode: yesterday, last_n_days or range
        days: window size for last_n_days
        start: first date (YYYY-MM-DD) for range
        end: last date (YYYY-MM-DD) for range
        today: override for the current UTC date

    Returns:
        Dates oldest first
    """
    mode = WindowMode(mode)
    if mode == WindowMode.YESTERDAY:
        return [yesterday(today)]
    if mode == WindowMode.LAST_N_DAYS:
        return last_n_days(days or 1, today)
    if not start or not end:
        raise InvalidRangeError("Provide both start and end as YYYY-MM-DD.")
    return date_range(start, end)


def coerce_date_str(value: Any = None, today: Optional[date] = None) -> str:
    """
    Coerce a variety of inputs into a ``YYYY-MM-DD`` string.

    None, empty strings and non-date objects (e.g. a scheduler event payload)
    fall back to yesterday UTC.
    """
    if isinstance(value, (date, datetime)):
        return normalize_date_str(value)
    if isinstance(value, str) and value.strip():
        s = value.strip()
        try:
            return format_date(parse_date(s))
        except InvalidRangeError:
            pass
        parsed = _parse_loose(s)
        if parsed is not None:
            return normalize_date_str(parsed)
    return format_date(yesterday(today))
