"""
Aggregations over the productivity ledger.

Everything starts from daily totals (minutes per calendar day, optionally
for one category) and is then shaped into the series the stats views show:
per-day bars for a week or month, per-month bars for a year, a per-day
heatmap for a year, and an all-time time-of-day histogram.
"""

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

import config
from tracking.ledger import HOURS_PER_DAY, Ledger
from tracking.timeutils import (
    DAY,
    MONTH,
    WEEK,
    YEAR,
    add_period,
    format_period_label,
    is_same_period,
    iter_days,
    parse_day_key,
    period_interval,
)

logger = logging.getLogger(__name__)


def format_hours_minutes(minutes: int) -> str:
    """
    Format a minute total for display.

    Examples:
        >>> format_hours_minutes(125)
        '2h 5m'
        >>> format_hours_minutes(0)
        '0h 0m'
    """
    minutes = max(0, int(minutes))
    return f"{minutes // 60}h {minutes % 60}m"


def daily_totals(ledger: Ledger, category: Optional[str] = None) -> Dict[date, int]:
    """
    Sum logged minutes per calendar day.

    Args:
        ledger: Ledger to aggregate.
        category: Only count segments of this category (None = all).

    Returns:
        Mapping of date -> total minutes, for every day stored in the ledger.
    """
    totals: Dict[date, int] = defaultdict(int)
    for key, buckets in ledger.days.items():
        try:
            day = parse_day_key(key)
        except ValueError as e:
            logger.warning(f"Skipping malformed day key {key!r}: {e}")
            continue
        totals[day] += sum(bucket.total_minutes(category) for bucket in buckets)
    return dict(totals)


def bar_series(ledger: Ledger, ref: date, granularity: str,
               category: Optional[str] = None,
               first_weekday: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Build the bar chart series for the period containing ref.

    Weekly and monthly series have one point per calendar day, including
    zero days. Yearly series have twelve points, one per month.

    Returns:
        List of {"date": date, "minutes": int}; yearly points are dated on
        the first of their month.

    Raises:
        ValueError: For granularities other than week, month and year.
    """
    if granularity not in (WEEK, MONTH, YEAR):
        raise ValueError(f"No bar series for granularity {granularity!r}")

    totals = daily_totals(ledger, category)
    start, end = period_interval(ref, granularity, first_weekday)

    if granularity == YEAR:
        months = [0] * 12
        for day, minutes in totals.items():
            if start <= day < end:
                months[day.month - 1] += minutes
        return [
            {"date": start.replace(month=i + 1), "minutes": months[i]}
            for i in range(12)
        ]

    return [
        {"date": day, "minutes": totals.get(day, 0)}
        for day in iter_days(start, end)
    ]


def heatmap(ledger: Ledger, ref: date, category: Optional[str] = None) -> Dict[str, Any]:
    """
    Per-day totals for the whole year containing ref.

    The ceiling only scales cell colours; values above it are reported
    as they are.
    """
    totals = daily_totals(ledger, category)
    start, end = period_interval(ref, YEAR)
    return {
        "year": start.year,
        "points": [
            {"date": day, "minutes": totals.get(day, 0)}
            for day in iter_days(start, end)
        ],
        "ceiling_minutes": config.HEATMAP_CEILING_MINUTES,
    }


def time_of_day_histogram(ledger: Ledger, category: Optional[str] = None) -> List[int]:
    """All-time minutes logged in each hour of the day (24 values)."""
    hours = [0] * HOURS_PER_DAY
    for buckets in ledger.days.values():
        for bucket in buckets:
            hours[bucket.hour] += bucket.total_minutes(category)
    return hours


def total_for_view(series: List[Dict[str, Any]]) -> int:
    """Sum of the values currently displayed."""
    return sum(point["minutes"] for point in series)


def generate_summary_text(series: List[Dict[str, Any]], label: str) -> str:
    """One-line summary for a displayed series, e.g. 'Oct 17 - Oct 23: 6h 40m'."""
    return f"{label}: {format_hours_minutes(total_for_view(series))}"


class StatsNavigator:
    """
    Tracks which period a stats view is showing and steps through periods.

    Stepping backward is always allowed. Stepping forward stops at the
    period containing today: the view never shows the future.
    """

    def __init__(self, granularity: str = WEEK, displayed: Optional[date] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 first_weekday: Optional[int] = None):
        """
        Args:
            granularity: DAY, WEEK, MONTH or YEAR.
            displayed: Initially displayed date (defaults to today).
            clock: Returns the current local time.
            first_weekday: Week start override (defaults to config).
        """
        self.granularity = granularity
        self.clock = clock
        self.first_weekday = first_weekday
        self.displayed: date = displayed or self._today()

    def _today(self) -> date:
        return self.clock().date()

    def set_granularity(self, granularity: str) -> None:
        if granularity not in (DAY, WEEK, MONTH, YEAR):
            raise ValueError(f"Unknown granularity: {granularity!r}")
        self.granularity = granularity

    def is_current_period(self) -> bool:
        return is_same_period(self.displayed, self._today(), self.granularity, self.first_weekday)

    def previous(self) -> bool:
        self.displayed = add_period(self.displayed, self.granularity, -1)
        return True

    def next(self) -> bool:
        """
        Step one period forward.

        Returns:
            False (displayed period unchanged) if that would move past today.
        """
        today = self._today()
        if self.is_current_period():
            logger.debug("Already showing the current period, not moving forward")
            return False

        candidate = add_period(self.displayed, self.granularity, 1)
        if period_interval(candidate, self.granularity, self.first_weekday)[0] > today:
            return False
        # Land on today rather than a later day of the current period
        self.displayed = min(candidate, today)
        return True

    def label(self) -> str:
        return format_period_label(self.displayed, self.granularity, self.first_weekday)

    def series(self, ledger: Ledger, category: Optional[str] = None) -> List[Dict[str, Any]]:
        return bar_series(ledger, self.displayed, self.granularity, category, self.first_weekday)
