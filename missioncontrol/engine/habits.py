"""Habit creation, day toggling and reset."""

import logging
import math
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Tuple

from missioncontrol.db.models import Habit, HabitMode, HabitStatus
from missioncontrol.engine.streak import derive, is_within_edit_window
from missioncontrol.utils.constants import (
    AUTOPILOT_TOTAL_DAYS,
    MANUAL_MAX_DAYS,
    MANUAL_MIN_DAYS,
)
from missioncontrol.utils.time_utils import add_calendar_days, utcnow

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def resolve_total_days(mode: HabitMode, requested: object = None) -> int:
    """Target length for a habit.

    Autopilot is always 21 days. Manual uses the requested count, floored
    and clamped into [3, 365]; a missing or non-numeric request falls
    back to 21.
    """
    if mode != HabitMode.MANUAL:
        return AUTOPILOT_TOTAL_DAYS

    if isinstance(requested, bool) or not isinstance(requested, (int, float)):
        return AUTOPILOT_TOTAL_DAYS
    if not math.isfinite(requested):
        return AUTOPILOT_TOTAL_DAYS

    return max(MANUAL_MIN_DAYS, min(MANUAL_MAX_DAYS, math.floor(requested)))


def compute_end_date(
    mode: HabitMode, start_date: datetime, total_days: int, tz: str = "UTC"
) -> datetime | None:
    """End date for manual habits, None for autopilot."""
    if mode != HabitMode.MANUAL:
        return None
    return add_calendar_days(start_date, total_days, tz)


def create_habit(
    title: str,
    description: str | None = None,
    mode: HabitMode = HabitMode.AUTOPILOT,
    total_days: object = None,
    now: datetime | None = None,
    tz: str = "UTC",
) -> Habit:
    """Build a new active habit with no completed days.

    Raises:
        ValueError: if the title is empty after trimming
    """
    if now is None:
        now = utcnow()

    title = (title or "").strip()
    if not title:
        raise ValueError("Habit title cannot be empty")

    mode = HabitMode(mode)
    days = resolve_total_days(mode, total_days)

    return Habit(
        id=new_id(),
        title=title,
        description=description,
        mode=mode,
        start_date=now,
        end_date=compute_end_date(mode, now, days, tz),
        total_days=days,
    )


def toggle_day(
    habit: Habit, key: str, now: datetime | None = None, tz: str = "UTC"
) -> Tuple[Habit, bool]:
    """Toggle a day in or out of the completed set.

    Returns:
        Tuple of (habit, added). The habit is returned untouched when the
        day is outside the edit window; callers check the window first
        to tell a locked day apart from a removal.
    """
    if now is None:
        now = utcnow()

    if not is_within_edit_window(key, now, tz):
        logger.debug(f"Rejected toggle of locked day {key} on habit {habit.id}")
        return habit, False

    if key in habit.completed_dates:
        dates = [d for d in habit.completed_dates if d != key]
        added = False
    else:
        dates = [*habit.completed_dates, key]
        added = True

    updated = derive(replace(habit, completed_dates=dates), now, tz)
    return updated, added


def reset_habit(habit: Habit, now: datetime | None = None, tz: str = "UTC") -> Habit:
    """Clear progress and restart the habit from `now`, keeping its id."""
    if now is None:
        now = utcnow()

    return replace(
        habit,
        start_date=now,
        end_date=compute_end_date(habit.mode, now, habit.total_days, tz),
        completed_dates=[],
        streak=0,
        is_completed=False,
        status=HabitStatus.ACTIVE,
    )
