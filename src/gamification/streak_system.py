"""
Daily Login Streak System

A streak counts consecutive calendar days with at least one login.

Transitions on a login at `today`:
- No previous login: streak starts at 1
- Same calendar day: no change (re-login is idempotent)
- Next calendar day: streak + 1
- Gap of 2+ days: streak resets to 1
- Login dated before the last login (device clock skew): no change,
  the stored streak and last login date are kept
"""

from datetime import date
from typing import Optional, Union
from zoneinfo import ZoneInfo
import logging

from pydantic import BaseModel

from src.models.student import StudentStats
from src.utils.datetime_helpers import days_between, to_local_date

logger = logging.getLogger(__name__)

STARTED = "started"
UNCHANGED = "unchanged"
CONTINUED = "continued"
RESET = "reset"
CLOCK_SKEW = "clock_skew"


class StreakUpdate(BaseModel):
    """Outcome of applying a login to a streak"""
    current_streak: int
    previous_streak: int
    last_login_date: Optional[date]
    status: str
    changed: bool

    @property
    def message(self) -> str:
        if self.status == STARTED:
            return "Streak started! Day 1 🎉"
        if self.status == CONTINUED:
            return f"Streak continues! Day {self.current_streak} 🔥"
        if self.status == RESET:
            return f"Streak reset. Previous: {self.previous_streak} days. Starting fresh! Day 1 💪"
        return f"Day {self.current_streak} 🔥"


def calculate_streak_update(
    current_streak: int,
    last_login_date: Optional[date],
    today: date,
    tz: Optional[Union[str, ZoneInfo]] = None
) -> StreakUpdate:
    """
    Apply a login on `today` to a streak

    Args:
        current_streak: Stored streak count
        last_login_date: Calendar date (or timestamp) of the previous login
        today: Calendar date (or timestamp) of this login
        tz: Timezone used to read calendar days from timestamps

    Returns:
        StreakUpdate; `changed` is False when nothing needs to be stored
    """
    previous = max(0, int(current_streak or 0))
    today = to_local_date(today, tz)

    if last_login_date is None:
        return StreakUpdate(
            current_streak=1,
            previous_streak=previous,
            last_login_date=today,
            status=STARTED,
            changed=True,
        )

    last_login_date = to_local_date(last_login_date, tz)
    gap_days = days_between(last_login_date, today, tz)

    if gap_days == 0:
        return StreakUpdate(
            current_streak=previous,
            previous_streak=previous,
            last_login_date=last_login_date,
            status=UNCHANGED,
            changed=False,
        )

    if gap_days < 0:
        logger.warning(
            f"Login dated {today} precedes last login {last_login_date}; "
            f"keeping streak at {previous}"
        )
        return StreakUpdate(
            current_streak=previous,
            previous_streak=previous,
            last_login_date=last_login_date,
            status=CLOCK_SKEW,
            changed=False,
        )

    if gap_days == 1:
        return StreakUpdate(
            current_streak=previous + 1,
            previous_streak=previous,
            last_login_date=today,
            status=CONTINUED,
            changed=True,
        )

    return StreakUpdate(
        current_streak=1,
        previous_streak=previous,
        last_login_date=today,
        status=RESET,
        changed=True,
    )


def apply_login(
    stats: StudentStats,
    today: date,
    tz: Optional[Union[str, ZoneInfo]] = None
) -> StreakUpdate:
    """Streak transition for a student's stored stats"""
    return calculate_streak_update(stats.current_streak, stats.last_login_date, today, tz)


def streak_status(
    stats: StudentStats,
    today: date,
    tz: Optional[Union[str, ZoneInfo]] = None
) -> str:
    """
    Display status of a stored streak without mutating it

    Returns:
        'no_history', 'active' (last login today or yesterday) or 'broken'
    """
    if stats.last_login_date is None:
        return "no_history"
    gap_days = days_between(stats.last_login_date, today, tz)
    return "active" if gap_days <= 1 else "broken"


def displayed_streak(
    stats: StudentStats,
    today: date,
    tz: Optional[Union[str, ZoneInfo]] = None
) -> int:
    """Streak to show on dashboards; a broken streak shows as 0"""
    if streak_status(stats, today, tz) == "active":
        return stats.current_streak
    return 0
