"""Unit tests for analytics module."""

import unittest
from datetime import date, datetime, timedelta
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tracking.analytics import (
    StatsNavigator,
    bar_series,
    daily_totals,
    format_hours_minutes,
    generate_summary_text,
    heatmap,
    time_of_day_histogram,
    total_for_view,
)
from tracking.ledger import Ledger, Segment, ensure_day
from tracking.timeutils import DAY, MONTH, WEEK, YEAR, iter_days, period_interval
import config

SATURDAY = 5


class TestAggregations(unittest.TestCase):
    """Test cases for aggregation functions."""

    def setUp(self):
        """Set up a small ledger spanning two months and two categories."""
        self.ledger = Ledger(categories=["Work", "Study"])
        entries = [
            ("2024-01-08", 9, Segment(0, 25, "Work")),
            ("2024-01-08", 10, Segment(30, 20, "Study")),
            ("2024-01-10", 13, Segment(45, 15, "Work")),
            ("2024-01-10", 14, Segment(0, 10, "Work")),
            ("2024-01-13", 9, Segment(0, 60, "Study")),
            ("2024-02-02", 22, Segment(10, 40, "Work")),
            ("2023-12-31", 9, Segment(0, 30, "Work")),
        ]
        for key, hour, segment in entries:
            ensure_day(self.ledger, key)[hour].segments.append(segment)
        ensure_day(self.ledger, "2024-01-11")  # empty day

    def test_daily_totals(self):
        totals = daily_totals(self.ledger)
        self.assertEqual(totals[date(2024, 1, 8)], 45)
        self.assertEqual(totals[date(2024, 1, 10)], 25)
        self.assertEqual(totals[date(2024, 1, 11)], 0)
        self.assertNotIn(date(2024, 1, 9), totals)

    def test_daily_totals_by_category(self):
        totals = daily_totals(self.ledger, "Study")
        self.assertEqual(totals[date(2024, 1, 8)], 20)
        self.assertEqual(totals[date(2024, 1, 10)], 0)

    def test_daily_totals_skips_malformed_keys(self):
        ensure_day(self.ledger, "not-a-day")[0].segments.append(Segment(0, 5, "Work"))
        self.assertEqual(sum(daily_totals(self.ledger).values()), 45 + 25 + 60 + 40 + 30)

    def test_weekly_series(self):
        series = bar_series(self.ledger, date(2024, 1, 10), WEEK, first_weekday=SATURDAY)
        self.assertEqual([p["date"] for p in series],
                         list(iter_days(date(2024, 1, 6), date(2024, 1, 13))))
        self.assertEqual([p["minutes"] for p in series], [0, 0, 45, 0, 25, 0, 0])

    def test_monthly_series_has_every_day(self):
        series = bar_series(self.ledger, date(2024, 2, 20), MONTH)
        self.assertEqual(len(series), 29)
        self.assertEqual(series[1], {"date": date(2024, 2, 2), "minutes": 40})
        self.assertEqual(total_for_view(series), 40)

    def test_yearly_series(self):
        series = bar_series(self.ledger, date(2024, 7, 1), YEAR)
        self.assertEqual(len(series), 12)
        self.assertEqual(series[0], {"date": date(2024, 1, 1), "minutes": 45 + 25 + 60})
        self.assertEqual(series[1]["minutes"], 40)
        self.assertEqual(total_for_view(series[2:]), 0)

    def test_yearly_series_by_category(self):
        series = bar_series(self.ledger, date(2024, 7, 1), YEAR, category="Study")
        self.assertEqual(series[0]["minutes"], 80)
        self.assertEqual(series[1]["minutes"], 0)

    def test_no_day_series(self):
        with self.assertRaises(ValueError):
            bar_series(self.ledger, date(2024, 1, 10), DAY)

    def test_series_totals_match_daily_totals(self):
        for category in (None, "Work", "Study", "Missing"):
            totals = daily_totals(self.ledger, category)
            for granularity, ref in [(WEEK, date(2024, 1, 10)), (MONTH, date(2024, 1, 10)),
                                     (MONTH, date(2023, 12, 5)), (YEAR, date(2024, 3, 3))]:
                start, end = period_interval(ref, granularity, SATURDAY)
                expected = sum(m for d, m in totals.items() if start <= d < end)
                series = bar_series(self.ledger, ref, granularity, category, SATURDAY)
                self.assertEqual(total_for_view(series), expected,
                                 msg=f"{granularity} {ref} {category}")

    def test_heatmap(self):
        data = heatmap(self.ledger, date(2024, 5, 5))
        self.assertEqual(data["year"], 2024)
        self.assertEqual(len(data["points"]), 366)
        self.assertEqual(data["points"][0]["date"], date(2024, 1, 1))
        self.assertEqual(data["points"][7]["minutes"], 45)
        self.assertEqual(data["ceiling_minutes"], config.HEATMAP_CEILING_MINUTES)

    def test_heatmap_does_not_clamp(self):
        buckets = ensure_day(self.ledger, "2024-06-01")
        for hour in range(24):
            buckets[hour].segments.append(Segment(0, 60, "Work"))
        data = heatmap(self.ledger, date(2024, 6, 1))
        june_first = [p for p in data["points"] if p["date"] == date(2024, 6, 1)][0]
        self.assertEqual(june_first["minutes"], 1440)

    def test_time_of_day_histogram(self):
        hours = time_of_day_histogram(self.ledger)
        self.assertEqual(len(hours), 24)
        self.assertEqual(hours[9], 25 + 60 + 30)
        self.assertEqual(hours[13], 15)
        self.assertEqual(hours[22], 40)
        self.assertEqual(hours[0], 0)
        self.assertEqual(sum(hours), 45 + 25 + 60 + 40 + 30)

    def test_time_of_day_histogram_by_category(self):
        hours = time_of_day_histogram(self.ledger, "Study")
        self.assertEqual(hours[9], 60)
        self.assertEqual(hours[10], 20)
        self.assertEqual(sum(hours), 80)


class TestFormatting(unittest.TestCase):
    """Display helpers."""

    def test_format_hours_minutes(self):
        self.assertEqual(format_hours_minutes(0), "0h 0m")
        self.assertEqual(format_hours_minutes(59), "0h 59m")
        self.assertEqual(format_hours_minutes(125), "2h 5m")

    def test_generate_summary_text(self):
        series = [{"date": date(2024, 1, 1), "minutes": 100},
                  {"date": date(2024, 1, 2), "minutes": 35}]
        self.assertEqual(generate_summary_text(series, "Week"), "Week: 2h 15m")


class TestStatsNavigator(unittest.TestCase):
    """Period navigation never moves into the future."""

    def setUp(self):
        self.now = datetime(2024, 1, 10, 15, 0)

    def _navigator(self, granularity, displayed=None):
        return StatsNavigator(granularity, displayed, clock=lambda: self.now,
                              first_weekday=SATURDAY)

    def test_starts_on_today(self):
        navigator = self._navigator(WEEK)
        self.assertEqual(navigator.displayed, date(2024, 1, 10))
        self.assertTrue(navigator.is_current_period())

    def test_forward_from_current_week_is_rejected(self):
        navigator = self._navigator(WEEK)
        self.assertFalse(navigator.next())
        self.assertEqual(navigator.displayed, date(2024, 1, 10))
        self.assertEqual(navigator.label(), "Jan 6 - Jan 12")

    def test_back_and_forward(self):
        navigator = self._navigator(WEEK)
        self.assertTrue(navigator.previous())
        self.assertEqual(navigator.displayed, date(2024, 1, 3))
        self.assertFalse(navigator.is_current_period())
        self.assertTrue(navigator.next())
        self.assertEqual(navigator.displayed, date(2024, 1, 10))
        self.assertFalse(navigator.next())

    def test_forward_into_current_period_lands_on_today(self):
        navigator = self._navigator(MONTH, displayed=date(2023, 12, 31))
        self.assertTrue(navigator.next())
        self.assertEqual(navigator.displayed, date(2024, 1, 10))

    def test_day_navigation(self):
        navigator = self._navigator(DAY)
        self.assertFalse(navigator.next())
        navigator.previous()
        self.assertEqual(navigator.displayed, date(2024, 1, 9))
        self.assertTrue(navigator.next())
        self.assertTrue(navigator.is_current_period())

    def test_year_navigation(self):
        navigator = self._navigator(YEAR)
        navigator.previous()
        self.assertEqual(navigator.label(), "2023")
        self.assertTrue(navigator.next())
        self.assertFalse(navigator.next())
        self.assertEqual(navigator.label(), "2024")

    def test_series_follows_displayed_period(self):
        ledger = Ledger()
        ensure_day(ledger, "2024-01-03")[9].segments.append(Segment(0, 30, "Work"))
        navigator = self._navigator(WEEK)
        self.assertEqual(total_for_view(navigator.series(ledger)), 0)
        navigator.previous()
        self.assertEqual(total_for_view(navigator.series(ledger)), 30)

    def test_set_granularity(self):
        navigator = self._navigator(WEEK)
        navigator.set_granularity(MONTH)
        self.assertEqual(navigator.label(), "January 2024")
        with self.assertRaises(ValueError):
            navigator.set_granularity("decade")


if __name__ == "__main__":
    unittest.main()
