"""Calendar-day keys, the edit window and consecutive-streak derivation."""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, List

from missioncontrol.db.models import Habit, HabitStatus
from missioncontrol.utils.constants import STREAK_TIERS
from missioncontrol.utils.time_utils import (
    add_calendar_days,
    day_key,
    local_date,
    parse_day_key,
    utcnow,
)


def today_key(now: datetime | None = None, tz: str = "UTC") -> str:
    """Day key for the local calendar day containing `now`."""
    if now is None:
        now = utcnow()
    return day_key(local_date(now, tz))


def yesterday_key(now: datetime | None = None, tz: str = "UTC") -> str:
    """Day key for the local calendar day before `now`."""
    if now is None:
        now = utcnow()
    return day_key(local_date(now, tz) - timedelta(days=1))


def is_within_edit_window(key: str, now: datetime | None = None, tz: str = "UTC") -> bool:
    """Only today and yesterday may be toggled."""
    return key in (today_key(now, tz), yesterday_key(now, tz))


def normalize_dates(keys: Iterable[str]) -> List[str]:
    """Deduplicate and sort day keys, dropping anything that is not a valid day.

    Full ISO timestamps are truncated to their date part.
    """
    valid = set()
    for key in keys:
        if not isinstance(key, str):
            continue
        candidate = key[:10]
        if parse_day_key(candidate) is not None:
            valid.add(candidate)
    return sorted(valid)


def compute_streak(
    completed_dates: Iterable[str], now: datetime | None = None, tz: str = "UTC"
) -> int:
    """Count consecutive completed days ending today or yesterday.

    The walk is anchored at today if it is completed, otherwise at
    yesterday. If neither is completed the streak is broken and is 0,
    however many earlier days are in the set.
    """
    if now is None:
        now = utcnow()

    completed = set(completed_dates)
    today = local_date(now, tz)
    yesterday = today - timedelta(days=1)

    if day_key(today) in completed:
        cursor = today
    elif day_key(yesterday) in completed:
        cursor = yesterday
    else:
        return 0

    streak = 0
    while day_key(cursor) in completed:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def derive(habit: Habit, now: datetime | None = None, tz: str = "UTC") -> Habit:
    """Recompute completed dates, streak, completion and status together.

    A failed habit keeps its status.
    """
    completed_dates = normalize_dates(habit.completed_dates)
    is_completed = len(completed_dates) >= habit.total_days
    if habit.status == HabitStatus.FAILED:
        status = HabitStatus.FAILED
    else:
        status = HabitStatus.COMPLETED if is_completed else HabitStatus.ACTIVE
    return replace(
        habit,
        completed_dates=completed_dates,
        streak=compute_streak(completed_dates, now, tz),
        is_completed=is_completed,
        status=status,
    )


def streak_tier(streak: int) -> str | None:
    """Banner tier for a streak, or None below the first tier."""
    for minimum, name in STREAK_TIERS:
        if streak >= minimum:
            return name
    return None


def habit_day_keys(habit: Habit, tz: str = "UTC") -> List[str]:
    """Day key for each day of the habit, counted from its start date."""
    return [
        day_key(local_date(add_calendar_days(habit.start_date, offset, tz), tz))
        for offset in range(habit.total_days)
    ]


def habit_progress(habit: Habit) -> float:
    """Fraction of target days completed, capped at 1."""
    if habit.total_days <= 0:
        return 0.0
    return min(1.0, len(habit.completed_dates) / habit.total_days)
