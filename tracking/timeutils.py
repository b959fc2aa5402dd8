"""
Calendar helpers shared by the ledger, streak and analytics modules.

All dates are local wall-clock dates. Nothing here converts to or from UTC:
a day key is whatever calendar date the local clock showed.

Periods are half-open intervals of dates, [start, end).
"""

from datetime import date, datetime, timedelta
from typing import Iterator, Tuple, Union

from dateutil.relativedelta import relativedelta

import config

DAY = "day"
WEEK = "week"
MONTH = "month"
YEAR = "year"

GRANULARITIES = (DAY, WEEK, MONTH, YEAR)

DAY_KEY_FORMAT = "%Y-%m-%d"

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _check_granularity(granularity: str) -> None:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity!r}")


def day_key(value: DateLike) -> str:
    """Format a date as the ledger's day key, e.g. '2026-03-07'."""
    return _as_date(value).strftime(DAY_KEY_FORMAT)


def parse_day_key(key: str) -> date:
    """
    Parse a 'YYYY-MM-DD' day key.

    Raises:
        ValueError: If the key is not a zero-padded calendar date.
    """
    parsed = datetime.strptime(key, DAY_KEY_FORMAT).date()
    # strptime accepts '2026-3-7'; keys must round-trip exactly
    if day_key(parsed) != key:
        raise ValueError(f"Day key is not zero-padded: {key!r}")
    return parsed


def period_interval(ref: DateLike, granularity: str,
                    first_weekday: int = None) -> Tuple[date, date]:
    """
    Return the [start, end) interval of the period containing ref.

    Args:
        ref: Reference date or datetime.
        granularity: One of DAY, WEEK, MONTH, YEAR.
        first_weekday: First day of the week (Monday=0 ... Sunday=6).
            Defaults to config.FIRST_WEEKDAY.

    Returns:
        Tuple of (start, end) dates, end exclusive.
    """
    _check_granularity(granularity)
    day = _as_date(ref)

    if granularity == DAY:
        return day, day + timedelta(days=1)

    if granularity == WEEK:
        if first_weekday is None:
            first_weekday = config.FIRST_WEEKDAY
        offset = (day.weekday() - first_weekday) % 7
        start = day - timedelta(days=offset)
        return start, start + timedelta(days=7)

    if granularity == MONTH:
        start = day.replace(day=1)
        return start, start + relativedelta(months=1)

    start = day.replace(month=1, day=1)
    return start, start.replace(year=start.year + 1)


def is_same_period(a: DateLike, b: DateLike, granularity: str,
                   first_weekday: int = None) -> bool:
    """Check whether two dates fall in the same period."""
    return (period_interval(a, granularity, first_weekday)[0]
            == period_interval(b, granularity, first_weekday)[0])


def add_period(value: DateLike, granularity: str, n: int) -> DateLike:
    """
    Move a date by n periods.

    Month and year steps clamp the day of month instead of overflowing,
    so Jan 31 + 1 month is Feb 28 (or 29), and Feb 29 + 1 year is Feb 28.
    """
    _check_granularity(granularity)
    if granularity == DAY:
        return value + timedelta(days=n)
    if granularity == WEEK:
        return value + timedelta(weeks=n)
    if granularity == MONTH:
        return value + relativedelta(months=n)
    return value + relativedelta(years=n)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each calendar day in [start, end)."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def format_clock(total_seconds: int) -> str:
    """Format a countdown as MM:SS (minutes are not wrapped at 60)."""
    total_seconds = max(0, int(total_seconds))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_day_label(value: DateLike, today: DateLike) -> str:
    """Human label for a day: 'Today', 'Yesterday' or 'Oct 18, 2026'."""
    day = _as_date(value)
    today = _as_date(today)
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def format_period_label(ref: DateLike, granularity: str,
                        first_weekday: int = None) -> str:
    """
    Human label for the period containing ref.

    Weeks show their first and last day ('Oct 17 - Oct 23'), months the
    month name and year, years just the year.
    """
    start, end = period_interval(ref, granularity, first_weekday)
    if granularity == WEEK:
        last = end - timedelta(days=1)
        return f"{start.strftime('%b')} {start.day} - {last.strftime('%b')} {last.day}"
    if granularity == MONTH:
        return start.strftime("%B %Y")
    if granularity == YEAR:
        return str(start.year)
    return day_key(start)
