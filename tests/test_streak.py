"""Tests for streak derivation."""

from dataclasses import replace
from datetime import datetime
from zoneinfo import ZoneInfo

from missioncontrol.db.models import Habit, HabitMode, HabitStatus
from missioncontrol.engine.streak import (
    compute_streak,
    derive,
    habit_day_keys,
    habit_progress,
    is_within_edit_window,
    normalize_dates,
    streak_tier,
    today_key,
    yesterday_key,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=ZoneInfo("UTC"))


def make_habit(dates, total_days=21):
    return Habit(
        id="h1",
        title="Read",
        mode=HabitMode.AUTOPILOT,
        start_date=datetime(2026, 3, 1, 9, 0, tzinfo=ZoneInfo("UTC")),
        total_days=total_days,
        completed_dates=dates,
    )


def test_today_and_yesterday_keys():
    """Test day keys are local calendar days."""
    assert today_key(NOW) == "2026-03-15"
    assert yesterday_key(NOW) == "2026-03-14"

    # 12:00 UTC on March 15 is already March 16 in Auckland
    assert today_key(NOW, "Pacific/Auckland") == "2026-03-16"


def test_edit_window():
    """Test only today and yesterday are editable."""
    assert is_within_edit_window("2026-03-15", NOW)
    assert is_within_edit_window("2026-03-14", NOW)
    assert not is_within_edit_window("2026-03-13", NOW)
    assert not is_within_edit_window("2026-03-16", NOW)
    assert not is_within_edit_window("not-a-date", NOW)


def test_edit_window_month_rollover():
    """Test yesterday crosses month and year boundaries."""
    new_year = datetime(2027, 1, 1, 8, 0, tzinfo=ZoneInfo("UTC"))
    assert is_within_edit_window("2026-12-31", new_year)


def test_normalize_dates():
    """Test deduplication, sorting and dropping invalid keys."""
    dates = ["2026-03-15", "2026-03-13", "2026-03-15", "bogus", "2026-02-30"]
    assert normalize_dates(dates) == ["2026-03-13", "2026-03-15"]

    # Legacy records stored full ISO timestamps
    assert normalize_dates(["2026-03-15T10:00:00.000Z"]) == ["2026-03-15"]


def test_streak_continuity():
    """Test three consecutive days ending today."""
    assert compute_streak(["2026-03-13", "2026-03-14", "2026-03-15"], NOW) == 3


def test_streak_anchored_at_yesterday():
    """Test the streak survives while today is still open."""
    assert compute_streak(["2026-03-12", "2026-03-13", "2026-03-14"], NOW) == 3


def test_streak_reset_when_both_anchor_days_missing():
    """Test a long earlier run counts for nothing once broken."""
    dates = [f"2026-03-{day:02d}" for day in range(1, 14)]
    assert compute_streak(dates, NOW) == 0


def test_streak_stops_at_first_gap():
    """Test the walk stops at a gap rather than counting all days."""
    dates = ["2026-03-10", "2026-03-11", "2026-03-14", "2026-03-15"]
    assert compute_streak(dates, NOW) == 2


def test_derive_completion_threshold():
    """Test completion flips exactly at total_days."""
    dates = ["2026-03-13", "2026-03-14"]
    habit = derive(make_habit(dates, total_days=3), NOW)
    assert not habit.is_completed
    assert habit.status == HabitStatus.ACTIVE

    habit = derive(make_habit([*dates, "2026-03-15"], total_days=3), NOW)
    assert habit.is_completed
    assert habit.status == HabitStatus.COMPLETED
    assert habit.streak == 3


def test_streak_tier():
    """Test banner tiers."""
    assert streak_tier(2) is None
    assert streak_tier(3) == "warm"
    assert streak_tier(7) == "hot"
    assert streak_tier(14) == "epic"
    assert streak_tier(30) == "legendary"


def test_habit_day_keys():
    """Test the day grid starts at the start date and rolls over months."""
    habit = replace(make_habit([]), start_date=datetime(2026, 1, 25, 9, 0, tzinfo=ZoneInfo("UTC")))

    keys = habit_day_keys(habit)
    assert len(keys) == 21
    assert keys[0] == "2026-01-25"
    assert keys[7] == "2026-02-01"
    assert keys[-1] == "2026-02-14"


def test_habit_progress():
    """Test progress is capped at 1."""
    assert habit_progress(make_habit(["2026-03-15"], total_days=4)) == 0.25
    assert habit_progress(make_habit(["2026-03-14", "2026-03-15"], total_days=1)) == 1.0


def test_derive_keeps_failed_status():
    """Test a failed habit is not turned back into an active one."""
    habit = replace(make_habit(["2026-03-15"], total_days=3), status=HabitStatus.FAILED)

    derived = derive(habit, NOW)
    assert derived.status == HabitStatus.FAILED
    assert derived.streak == 1
