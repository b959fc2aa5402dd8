"""Goal streak: consecutive days that reached the daily goal."""

import logging
from datetime import date, datetime, timedelta
from typing import Union

from tracking.ledger import Ledger, met_goal
from tracking.timeutils import day_key

logger = logging.getLogger(__name__)


def current_streak(ledger: Ledger, today: Union[date, datetime]) -> int:
    """
    Count consecutive goal-meeting days ending today or yesterday.

    Today only extends the streak once it meets the goal; until then the
    count runs from yesterday, so an unfinished day doesn't break it.

    The backward walk can't exceed the number of days stored in the ledger,
    since a day that was never stored can't meet a positive goal.
    """
    if isinstance(today, datetime):
        today = today.date()

    day = today
    if not met_goal(ledger, day_key(day)):
        day -= timedelta(days=1)

    streak = 0
    max_days = len(ledger.days)
    while streak < max_days and met_goal(ledger, day_key(day)):
        streak += 1
        day -= timedelta(days=1)

    logger.debug(f"Current streak: {streak} day(s)")
    return streak
