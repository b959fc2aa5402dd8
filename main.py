#!/usr/bin/env python3
"""
FocusLedger - Main Entry Point

A focus timer that keeps a ledger of productive time per category and
derives streaks, bar charts, a heatmap and a time-of-day histogram from it.

Usage:
    python main.py start --category Work [--minutes 25]
    python main.py day [--offset -1]
    python main.py stats [--range week|month|year] [--offset -1] [--category Work]
    python main.py heatmap [--year 2026]
    python main.py hours
    python main.py streak
    python main.py goal 150
    python main.py category Reading
"""

import argparse
import logging
import subprocess
import sys
import time
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

import config
from core.cues import CuePlayer
from core.engine import TimerEngine
from tracking.analytics import (
    StatsNavigator,
    format_hours_minutes,
    generate_summary_text,
    heatmap,
    time_of_day_histogram,
)
from tracking.ledger import (
    DAY_FUTURE,
    DAY_PAST_MET,
    DAY_PAST_MISSED,
    DAY_TODAY_MET,
    DAY_TODAY_PENDING,
    LedgerStore,
    day_buckets,
    day_status,
    day_total_minutes,
)
from tracking.timeutils import DAY, MONTH, WEEK, YEAR, day_key, format_clock, format_day_label

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format=config.LOG_FORMAT
)
logger = logging.getLogger(__name__)

BAR_WIDTH = 40

# Player processes still running, reaped on the next cue
_players: List[subprocess.Popen] = []

DAY_STATUS_TEXT = {
    DAY_TODAY_MET: "goal met",
    DAY_TODAY_PENDING: "in progress",
    DAY_PAST_MET: "goal met",
    DAY_PAST_MISSED: "goal missed",
    DAY_FUTURE: "upcoming",
}


def play_sound_file(sound_file: Path) -> None:
    """Start playback with the platform's command line player."""
    _players[:] = [player for player in _players if player.poll() is None]
    if sys.platform == "darwin":
        command = ["afplay", str(sound_file)]
    elif sys.platform == "win32":
        command = ["powershell", "-c", f'(New-Object Media.SoundPlayer "{sound_file}").PlaySync()']
    else:
        command = ["mpg123", "-q", str(sound_file)]
    _players.append(subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL))


def render_bar(minutes: int, scale: int) -> str:
    if scale <= 0:
        return ""
    return "#" * min(BAR_WIDTH, round(BAR_WIDTH * minutes / scale))


class TerminalTimer:
    """
    Drives a TimerEngine from the terminal with a one-second sleep loop.

    Runs one work session and the break that follows it. Ctrl+C pauses
    the timer, saves the ledger and exits.
    """

    def __init__(self, engine: TimerEngine):
        self.engine = engine
        self.engine.on_state_change = self._render
        self.engine.on_rejected = self._show_rejection
        self.engine.on_event = CuePlayer(play=play_sound_file).handle
        self._last_mode = engine.state.mode

    def _render(self, snapshot: dict) -> None:
        if snapshot["mode"] != self._last_mode:
            print()
            self._last_mode = snapshot["mode"]
        status = "running" if snapshot["running"] else "stopped"
        category = snapshot["bound_category"] or "-"
        print(f"\r{snapshot['title']:<14} {snapshot['clock']}  [{category}] ({status})   ",
              end="", flush=True)

    @staticmethod
    def _show_rejection(error_type: str, message: str) -> None:
        print(f"\n⚠ {message}")

    def run(self, category: str, minutes: Optional[int] = None) -> int:
        if minutes is not None:
            result = self.engine.select_duration_minutes(minutes)
            if not result["success"]:
                return 1
        if not self.engine.add_category(category)["success"]:
            return 1
        if not self.engine.start()["success"]:
            return 1

        try:
            # Work session, then the break that starts on its own
            while self.engine.state.running:
                time.sleep(1)
                self.engine.tick()
        except KeyboardInterrupt:
            self.engine.pause()
            print("\n⏸ Paused. Unfinished sessions are not logged.")
        finally:
            self.engine.on_background()

        print(f"\n🔥 Current streak: {self.engine.current_streak()} day(s)")
        return 0


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

def cmd_start(args, store: LedgerStore) -> int:
    return TerminalTimer(TimerEngine(store=store)).run(args.category, args.minutes)


def _move(navigator: StatsNavigator, offset: int) -> None:
    """Step the navigator offset periods (negative = past), stopping at today."""
    for _ in range(abs(offset)):
        if offset < 0:
            navigator.previous()
        elif not navigator.next():
            break


def cmd_day(args, store: LedgerStore) -> int:
    ledger = store.load()
    navigator = StatsNavigator(granularity=DAY)
    _move(navigator, args.offset)

    today = datetime.now().date()
    day = navigator.displayed
    key = day_key(day)
    status = day_status(ledger, day, today)
    print(f"{format_day_label(day, today)}: "
          f"{format_hours_minutes(day_total_minutes(ledger, key))} of "
          f"{format_hours_minutes(ledger.daily_goal_minutes)} ({DAY_STATUS_TEXT[status]})")

    for bucket in day_buckets(ledger, key):
        blocks = ", ".join(
            f":{segment.start_minute:02d} {segment.duration_minutes}m {segment.category}"
            for segment in bucket.segments
        )
        print(f"{bucket.hour:02d}:00 | {blocks or '-'}")
    return 0


def cmd_stats(args, store: LedgerStore) -> int:
    ledger = store.load()
    navigator = StatsNavigator(granularity=args.range)
    _move(navigator, args.offset)

    series = navigator.series(ledger, args.category)
    scale = max([point["minutes"] for point in series] + [ledger.daily_goal_minutes])
    date_format = "%b" if args.range == YEAR else "%a %d"
    for point in series:
        print(f"{point['date'].strftime(date_format):>7} "
              f"{format_hours_minutes(point['minutes']):>8} {render_bar(point['minutes'], scale)}")
    print(generate_summary_text(series, navigator.label()))
    return 0


def cmd_heatmap(args, store: LedgerStore) -> int:
    ledger = store.load()
    year = args.year or datetime.now().year
    data = heatmap(ledger, date(year, 1, 1), args.category)
    shades = " .:-=+*#%@"
    ceiling = data["ceiling_minutes"]

    # One row per month, one character per day
    rows = {}
    for point in data["points"]:
        level = min(len(shades) - 1, point["minutes"] * (len(shades) - 1) // ceiling)
        rows.setdefault(point["date"].strftime("%b"), []).append(shades[level])
    print(f"Heatmap {data['year']} (darkest = {format_hours_minutes(ceiling)}+)")
    for month, cells in rows.items():
        print(f"{month} |{''.join(cells)}|")
    return 0


def cmd_hours(args, store: LedgerStore) -> int:
    hours = time_of_day_histogram(store.load(), args.category)
    scale = max(hours) if any(hours) else 0
    for hour, minutes in enumerate(hours):
        print(f"{hour:02d}:00 {format_hours_minutes(minutes):>9} {render_bar(minutes, scale)}")
    return 0


def cmd_streak(args, store: LedgerStore) -> int:
    engine = TimerEngine(store=store)
    snapshot = engine.get_snapshot()
    print(f"🔥 Current streak: {engine.current_streak()} day(s) "
          f"(goal {format_hours_minutes(snapshot['daily_goal_minutes'])})")
    return 0


def cmd_goal(args, store: LedgerStore) -> int:
    result = TimerEngine(store=store).set_goal(args.minutes)
    if not result["success"]:
        print(f"❌ {result['error']}")
        return 1
    print(f"✓ Daily goal set to {format_hours_minutes(args.minutes)}")
    return 0


def cmd_category(args, store: LedgerStore) -> int:
    engine = TimerEngine(store=store)
    result = engine.add_category(args.name, select=False)
    if not result["success"]:
        print(f"❌ {result['error']}")
        return 1
    print("Categories: " + ", ".join(engine.ledger.categories))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FocusLedger - Focus timer with a productivity ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  python main.py start --category Work          {format_clock(config.DEFAULT_WORK_SECONDS)} work session
  python main.py day --offset -1                Yesterday's timeline
  python main.py stats --range month --offset -1  Last month
  python main.py goal 150                       Daily goal of 2h 30m
        """
    )
    parser.add_argument("--ledger", type=Path, default=None,
                        help=f"Ledger file (default: {config.LEDGER_FILE})")
    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Run a work session and its break")
    start.add_argument("--category", required=True)
    start.add_argument("--minutes", type=int, default=None,
                       help=f"Session length (presets: {config.PRESET_DURATIONS_MINUTES})")
    start.set_defaults(func=cmd_start)

    day = sub.add_parser("day", help="Hour-by-hour timeline for one day")
    day.add_argument("--offset", type=int, default=0, help="Days to move (negative = past)")
    day.set_defaults(func=cmd_day)

    stats = sub.add_parser("stats", help="Bar chart for a week, month or year")
    stats.add_argument("--range", choices=[WEEK, MONTH, YEAR], default=WEEK)
    stats.add_argument("--offset", type=int, default=0, help="Periods to move (negative = past)")
    stats.add_argument("--category", default=None)
    stats.set_defaults(func=cmd_stats)

    heat = sub.add_parser("heatmap", help="Per-day heatmap for a year")
    heat.add_argument("--year", type=int, default=None)
    heat.add_argument("--category", default=None)
    heat.set_defaults(func=cmd_heatmap)

    hours = sub.add_parser("hours", help="All-time minutes per hour of the day")
    hours.add_argument("--category", default=None)
    hours.set_defaults(func=cmd_hours)

    streak = sub.add_parser("streak", help="Current goal streak")
    streak.set_defaults(func=cmd_streak)

    goal = sub.add_parser("goal", help="Set the daily goal in minutes")
    goal.add_argument("minutes", type=int)
    goal.set_defaults(func=cmd_goal)

    category = sub.add_parser("category", help="Add a category")
    category.add_argument("name")
    category.set_defaults(func=cmd_category)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point: parses arguments and runs the command."""
    args = build_parser().parse_args(argv)
    store = LedgerStore(args.ledger)
    try:
        return args.func(args, store)
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
