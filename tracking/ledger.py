"""
Productivity ledger for FocusLedger.

The ledger maps each local calendar day ("YYYY-MM-DD") to 24 hour buckets.
Every bucket holds the segments of productive time logged in that hour,
each tagged with a category. Alongside the days it persists the number of
work sessions completed since the last long break, the daily goal and the
ordered list of categories.

Loading is tolerant: the file is tried against each known schema in turn
(current first, then older layouts that get migrated). A file nothing can
decode is replaced by an empty ledger instead of failing the caller.
"""

import json
import logging
import os
import tempfile
from collections import namedtuple
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import config
from tracking.timeutils import day_key, parse_day_key

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
MINUTES_PER_HOUR = 60

SCHEMA_CURRENT = "current"
SCHEMA_LEGACY_TAGS = "legacy_tags"

DAY_TODAY_MET = "today_met"
DAY_TODAY_PENDING = "today_pending"
DAY_PAST_MET = "past_met"
DAY_PAST_MISSED = "past_missed"
DAY_FUTURE = "future"


@dataclass(frozen=True)
class Segment:
    """A contiguous slice of productive time inside a single hour."""

    start_minute: int
    duration_minutes: int
    category: str

    def __post_init__(self):
        if not isinstance(self.start_minute, int) or not 0 <= self.start_minute < MINUTES_PER_HOUR:
            raise ValueError(f"start_minute out of range: {self.start_minute!r}")
        if not isinstance(self.duration_minutes, int) or self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be a positive integer: {self.duration_minutes!r}")
        if self.start_minute + self.duration_minutes > MINUTES_PER_HOUR:
            raise ValueError(
                f"Segment crosses the hour boundary: start={self.start_minute}, "
                f"duration={self.duration_minutes}"
            )
        if not isinstance(self.category, str) or not self.category:
            raise ValueError("Segment category must be a non-empty string")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startMinute": self.start_minute,
            "durationMinutes": self.duration_minutes,
            "category": self.category,
        }


@dataclass
class HourBucket:
    """All segments logged during one hour of one day."""

    hour: int
    segments: List[Segment] = field(default_factory=list)

    def total_minutes(self, category: Optional[str] = None) -> int:
        return sum(
            s.duration_minutes for s in self.segments
            if category is None or s.category == category
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hour": self.hour,
            "productiveSegments": [s.to_dict() for s in self.segments],
        }


def empty_day() -> List[HourBucket]:
    """24 empty hour buckets, hours 0-23."""
    return [HourBucket(hour=h) for h in range(HOURS_PER_DAY)]


@dataclass
class Ledger:
    """
    The full persisted state.

    Attributes:
        days: Day key -> 24 HourBuckets indexed by hour.
        session_count: Work sessions completed since the last long break.
        daily_goal_minutes: Minutes per day that count as meeting the goal.
        categories: Known categories in insertion order, no duplicates.
    """

    days: Dict[str, List[HourBucket]] = field(default_factory=dict)
    session_count: int = 0
    daily_goal_minutes: int = config.DEFAULT_DAILY_GOAL_MINUTES
    categories: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the current schema. Days are written in key order."""
        return {
            "productivityData": {
                key: [bucket.to_dict() for bucket in self.days[key]]
                for key in sorted(self.days)
            },
            "productiveSessionCount": self.session_count,
            "dailyGoalMinutes": self.daily_goal_minutes,
            "categories": list(self.categories),
        }


# ----------------------------------------------------------------------
# Ledger operations
# ----------------------------------------------------------------------

def ensure_day(ledger: Ledger, key: str) -> List[HourBucket]:
    """
    Create the 24 hour buckets for a day if they don't exist yet.

    Idempotent: an existing day is returned untouched.
    """
    buckets = ledger.days.get(key)
    if buckets is None:
        buckets = empty_day()
        ledger.days[key] = buckets
    return buckets


def day_buckets(ledger: Ledger, key: str) -> List[HourBucket]:
    """
    The 24 hour buckets of a day, for display.

    Read only: a day that was never logged gets fresh empty buckets that
    are not added to the ledger.
    """
    buckets = ledger.days.get(key)
    if buckets is None:
        return empty_day()
    return buckets


def add_category(ledger: Ledger, name: str) -> bool:
    """
    Append a category to the ledger's list.

    The name is trimmed first. Empty names and exact (case-sensitive)
    duplicates are ignored.

    Returns:
        True if the category was added, False if it was a no-op.
    """
    trimmed = (name or "").strip()
    if not trimmed or trimmed in ledger.categories:
        return False
    ledger.categories.append(trimmed)
    logger.info(f"Added category: {trimmed}")
    return True


def set_daily_goal(ledger: Ledger, minutes: int) -> bool:
    """
    Set the daily goal.

    Returns:
        False (ledger unchanged) if minutes is not a positive integer.
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        logger.warning(f"Ignoring invalid daily goal: {minutes!r}")
        return False
    ledger.daily_goal_minutes = minutes
    return True


def adjust_daily_goal(ledger: Ledger, steps: int) -> int:
    """
    Move the goal up or down by whole stepper steps, clamped to the range.

    Returns:
        The new goal in minutes.
    """
    goal = ledger.daily_goal_minutes + steps * config.GOAL_STEP_MINUTES
    goal = max(config.GOAL_MIN_MINUTES, min(config.GOAL_MAX_MINUTES, goal))
    ledger.daily_goal_minutes = goal
    return goal


def day_total_minutes(ledger: Ledger, key: str, category: Optional[str] = None) -> int:
    """Total logged minutes on a day (0 for days never touched)."""
    buckets = ledger.days.get(key)
    if not buckets:
        return 0
    return sum(bucket.total_minutes(category) for bucket in buckets)


def met_goal(ledger: Ledger, key: str) -> bool:
    """A day meets the goal when its total reaches it (inclusive)."""
    return day_total_minutes(ledger, key) >= ledger.daily_goal_minutes


def day_status(ledger: Ledger, day: date, today: date) -> str:
    """
    Classify a day for timeline colouring.

    Today is either met or still pending, past days are met or missed,
    and future days have no status yet.
    """
    if day > today:
        return DAY_FUTURE
    met = met_goal(ledger, day_key(day))
    if day == today:
        return DAY_TODAY_MET if met else DAY_TODAY_PENDING
    return DAY_PAST_MET if met else DAY_PAST_MISSED


# ----------------------------------------------------------------------
# Schema decoding and migration
# ----------------------------------------------------------------------

def _require_int(data: Dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {type(value).__name__}")
    return value


def _decode_days(raw_days: Dict[str, Any],
                 category_of: Callable[[Dict[str, Any]], str]) -> Dict[str, List[HourBucket]]:
    """
    Decode the productivityData mapping.

    Buckets are re-indexed by hour so every decoded day has exactly 24,
    whatever order (or gaps) the file had.
    """
    if not isinstance(raw_days, dict):
        raise TypeError("productivityData must be an object")

    days: Dict[str, List[HourBucket]] = {}
    for key, raw_buckets in raw_days.items():
        parse_day_key(key)
        if not isinstance(raw_buckets, list):
            raise TypeError(f"Hour buckets for {key} must be a list")

        buckets = empty_day()
        for raw_bucket in raw_buckets:
            hour = _require_int(raw_bucket, "hour")
            if not 0 <= hour < HOURS_PER_DAY:
                raise ValueError(f"Hour out of range on {key}: {hour}")
            for raw_segment in raw_bucket["productiveSegments"]:
                buckets[hour].segments.append(Segment(
                    start_minute=_require_int(raw_segment, "startMinute"),
                    duration_minutes=_require_int(raw_segment, "durationMinutes"),
                    category=category_of(raw_segment),
                ))
        days[key] = buckets
    return days


def _decode_goal_and_count(data: Dict[str, Any]) -> Dict[str, int]:
    session_count = _require_int(data, "productiveSessionCount")
    goal = _require_int(data, "dailyGoalMinutes")
    if session_count < 0:
        raise ValueError(f"productiveSessionCount is negative: {session_count}")
    if goal <= 0:
        raise ValueError(f"dailyGoalMinutes must be positive: {goal}")
    return {"session_count": session_count, "daily_goal_minutes": goal}


def _unique_strings(values: Any, key: str) -> List[str]:
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise TypeError(f"{key} must be a list of strings")
    result: List[str] = []
    for value in values:
        if value and value not in result:
            result.append(value)
    return result


def decode_current(data: Dict[str, Any]) -> Ledger:
    """Decode a document in the current schema (mandatory category per segment)."""
    def category_of(raw_segment: Dict[str, Any]) -> str:
        return raw_segment["category"]

    return Ledger(
        days=_decode_days(data["productivityData"], category_of),
        categories=_unique_strings(data["categories"], "categories"),
        **_decode_goal_and_count(data),
    )


def decode_legacy_tags(data: Dict[str, Any]) -> Ledger:
    """
    Decode the older schema: a 'tags' list and an optional 'tag' per segment.

    Segments with a missing or empty tag get the default category;
    migrate_legacy_tags then registers that category.
    """
    def category_of(raw_segment: Dict[str, Any]) -> str:
        tag = raw_segment.get("tag")
        if tag is not None and not isinstance(tag, str):
            raise TypeError("tag must be a string")
        return tag or config.DEFAULT_CATEGORY

    return Ledger(
        days=_decode_days(data["productivityData"], category_of),
        categories=_unique_strings(data["tags"], "tags"),
        **_decode_goal_and_count(data),
    )


def migrate_identity(ledger: Ledger) -> Ledger:
    return ledger


def migrate_legacy_tags(ledger: Ledger) -> Ledger:
    """Make sure the default category for untagged time is registered."""
    if config.DEFAULT_CATEGORY not in ledger.categories:
        ledger.categories.append(config.DEFAULT_CATEGORY)
    return ledger


SchemaAttempt = namedtuple("SchemaAttempt", ["tag", "decode", "migrate"])

# Tried in order; the first one that decodes wins.
SCHEMA_ATTEMPTS = [
    SchemaAttempt(SCHEMA_CURRENT, decode_current, migrate_identity),
    SchemaAttempt(SCHEMA_LEGACY_TAGS, decode_legacy_tags, migrate_legacy_tags),
]

DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def decode_document(data: Any) -> Optional[tuple]:
    """
    Run the schema attempts against a parsed JSON document.

    Returns:
        (schema_tag, Ledger) for the first attempt that succeeds, or None.
    """
    if not isinstance(data, dict):
        return None
    for attempt in SCHEMA_ATTEMPTS:
        try:
            ledger = attempt.decode(data)
        except DECODE_ERRORS as e:
            logger.debug(f"Ledger is not in {attempt.tag} schema: {e}")
            continue
        return attempt.tag, attempt.migrate(ledger)
    return None


# ----------------------------------------------------------------------
# Persistence
# ----------------------------------------------------------------------

class LedgerStore:
    """
    Loads and saves the ledger as a single JSON document.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            path: Path to the JSON ledger file (defaults to config.LEDGER_FILE).
        """
        self.path = Path(path) if path is not None else config.LEDGER_FILE

    def load(self) -> Ledger:
        """
        Load the ledger, migrating older schemas.

        Never raises: a missing, unreadable or undecodable file yields an
        empty default ledger. A migrated ledger is saved back right away in
        the current schema.

        Returns:
            Loaded, migrated or default Ledger.
        """
        if not self.path.exists():
            logger.info(f"No ledger at {self.path}, starting fresh")
            return Ledger()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, IOError, OSError) as e:
            logger.warning(f"Failed to read ledger: {e}. Starting fresh.")
            return Ledger()

        decoded = decode_document(data)
        if decoded is None:
            logger.warning("Could not decode any known ledger format. Resetting to default.")
            return Ledger()

        schema_tag, ledger = decoded
        if schema_tag != SCHEMA_CURRENT:
            logger.info(f"Migrated ledger from {schema_tag} schema")
            self.save(ledger)
        else:
            logger.debug(f"Loaded ledger with {len(ledger.days)} days")
        return ledger

    def save(self, ledger: Ledger) -> bool:
        """
        Save the ledger atomically.

        Writes to a temp file in the same directory, then renames it over
        the ledger, so a crash mid-save leaves the previous file intact.

        Returns:
            True if saved successfully, False otherwise.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            temp_fd, temp_path = tempfile.mkstemp(
                suffix='.tmp',
                prefix='ledger_',
                dir=self.path.parent
            )

            try:
                with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                    json.dump(ledger.to_dict(), f, indent=2)
                os.replace(temp_path, self.path)
            except Exception:
                # Clean up temp file on error
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise

            logger.debug(f"Saved ledger to {self.path}")
            return True

        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save ledger: {e}")
            return False
