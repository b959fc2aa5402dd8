"""
Turns a finished work session into ledger segments.

A session is described by the instant it completed, its length and its
category. It is filed under the day it completed, split at every hour
boundary it crosses so no segment ever spans two hours.
"""

import copy
import logging
from datetime import datetime, timedelta
from typing import List, Tuple

from tracking.ledger import (
    HOURS_PER_DAY,
    MINUTES_PER_HOUR,
    Ledger,
    Segment,
    ensure_day,
)
from tracking.timeutils import day_key

logger = logging.getLogger(__name__)

MAX_SESSION_MINUTES = HOURS_PER_DAY * MINUTES_PER_HOUR


def split_session(completion: datetime, duration_seconds: int,
                  category: str) -> List[Tuple[int, Segment]]:
    """
    Split a session into (hour, Segment) pairs.

    The session starts at completion - duration_seconds. Time is counted in
    whole minutes from the start minute, so the segments always add up to
    duration_seconds // 60. A session ending exactly on the hour adds nothing
    to that hour.

    Sessions longer than a day keep only their final 24 hours, which is the
    most a single day's buckets can hold.

    Returns:
        List of (hour, Segment) in time order; empty for sub-minute sessions.
    """
    total_minutes = int(duration_seconds) // 60
    if total_minutes <= 0:
        return []

    start = (completion - timedelta(seconds=duration_seconds)).replace(second=0, microsecond=0)
    if total_minutes > MAX_SESSION_MINUTES:
        logger.warning(
            f"Session of {total_minutes} min exceeds one day, keeping the last "
            f"{MAX_SESSION_MINUTES} min"
        )
        start += timedelta(minutes=total_minutes - MAX_SESSION_MINUTES)
        total_minutes = MAX_SESSION_MINUTES

    pieces: List[Tuple[int, Segment]] = []
    cursor = start
    remaining = total_minutes
    while remaining > 0:
        take = min(remaining, MINUTES_PER_HOUR - cursor.minute)
        pieces.append((cursor.hour, Segment(cursor.minute, take, category)))
        cursor += timedelta(minutes=take)
        remaining -= take
    return pieces


def log_session(ledger: Ledger, completion: datetime, duration_seconds: int,
                category: str) -> Ledger:
    """
    Record a completed work session.

    Pure: the given ledger is not modified. Invalid input (negative or
    sub-minute duration, empty category) is dropped with a warning and
    the ledger comes back unchanged.

    Args:
        ledger: Current ledger.
        completion: Local wall-clock instant the session finished.
        duration_seconds: Length of the session.
        category: Category bound to the session.

    Returns:
        A new Ledger including the session's segments.
    """
    if not isinstance(category, str) or not category.strip():
        logger.warning("Dropping session without a category")
        return ledger
    if duration_seconds < 0:
        logger.warning(f"Dropping session with negative duration: {duration_seconds}s")
        return ledger

    pieces = split_session(completion, duration_seconds, category)
    if not pieces:
        logger.debug(f"Session of {duration_seconds}s is under a minute, not logged")
        return ledger

    updated = copy.deepcopy(ledger)
    key = day_key(completion)
    buckets = ensure_day(updated, key)
    for hour, segment in pieces:
        buckets[hour].segments.append(segment)

    logger.info(
        f"Logged {sum(s.duration_minutes for _, s in pieces)} min of {category} "
        f"on {key} in {len(pieces)} segment(s)"
    )
    return updated
