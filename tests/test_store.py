"""Tests for the mission store."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from missioncontrol.db.models import (
    Habit,
    HabitMode,
    HabitStatus,
    MiniMissionStatus,
    StartMode,
    StoreSnapshot,
)
from missioncontrol.store import MissionStore

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=ZoneInfo("UTC"))


def store_with_days(days, total_days=21):
    """Store holding one habit whose completed days are the given March dates."""
    habit = Habit(
        id="h1",
        title="Read",
        mode=HabitMode.AUTOPILOT,
        start_date=datetime(2026, 3, 1, 9, 0, tzinfo=ZoneInfo("UTC")),
        total_days=total_days,
        completed_dates=[f"2026-03-{day:02d}" for day in days],
    )
    return MissionStore(StoreSnapshot(habits=[habit]))


def test_add_habit_awards_no_xp():
    """Test creation only appends the habit."""
    store = MissionStore()
    habit = store.add_habit("Journal", now=NOW)

    assert store.habits == (habit,)
    assert store.xp == 0


def test_manual_clamp():
    """Test manual lengths are clamped on creation."""
    store = MissionStore()
    assert store.add_habit("Short", mode=HabitMode.MANUAL, total_days=1, now=NOW).total_days == 3
    assert store.add_habit("Long", mode=HabitMode.MANUAL, total_days=1000, now=NOW).total_days == 365


def test_toggle_today_awards_xp():
    """Test checking off today."""
    store = store_with_days([])

    assert store.toggle_completion("h1", "2026-03-15", NOW)
    habit = store.get_habit("h1", NOW)
    assert habit.completed_dates == ["2026-03-15"]
    assert habit.streak == 1
    assert store.xp == 10


def test_toggle_locked_day_is_rejected():
    """Test days older than yesterday cannot be changed."""
    store = store_with_days([10, 11, 14])
    before = store.get_habit("h1", NOW).completed_dates

    assert not store.toggle_completion("h1", "2026-03-11", NOW)
    assert not store.toggle_completion("h1", "2026-03-13", NOW)
    assert not store.toggle_completion("h1", "2026-03-16", NOW)

    assert store.get_habit("h1", NOW).completed_dates == before
    assert store.xp == 0


def test_toggle_unknown_habit():
    """Test unknown ids are no-ops."""
    store = MissionStore()
    assert not store.toggle_completion("missing", "2026-03-15", NOW)


def test_milestone_xp_at_seven():
    """Test reaching a 7-day streak pays the milestone bonus."""
    store = store_with_days(range(9, 15))  # March 9-14, streak 6

    store.toggle_completion("h1", "2026-03-15", NOW)
    assert store.get_habit("h1", NOW).streak == 7
    assert store.xp == 60


def test_no_milestone_xp_at_eight():
    """Test an ordinary day pays only the base award."""
    store = store_with_days(range(8, 15))  # March 8-14, streak 7

    store.toggle_completion("h1", "2026-03-15", NOW)
    assert store.get_habit("h1", NOW).streak == 8
    assert store.xp == 10


def test_uncheck_keeps_xp():
    """Test unchecking a day does not claw back its XP."""
    store = store_with_days([])

    store.toggle_completion("h1", "2026-03-15", NOW)
    assert store.xp == 10

    assert store.toggle_completion("h1", "2026-03-15", NOW)
    assert store.get_habit("h1", NOW).completed_dates == []
    assert store.xp == 10


def test_completion_threshold():
    """Test the habit completes when the last target day is checked."""
    store = store_with_days([12, 13, 14], total_days=4)

    store.toggle_completion("h1", "2026-03-15", NOW)
    habit = store.get_habit("h1", NOW)
    assert habit.is_completed
    assert habit.status == HabitStatus.COMPLETED

    store.toggle_completion("h1", "2026-03-15", NOW)
    habit = store.get_habit("h1", NOW)
    assert not habit.is_completed
    assert habit.status == HabitStatus.ACTIVE


def test_get_habit_recomputes_streak():
    """Test a streak broken overnight reads as 0 without a mutation."""
    store = store_with_days([])
    store.toggle_completion("h1", "2026-03-15", NOW)

    two_days_later = NOW + timedelta(days=2)
    assert store.get_habit("h1", NOW).streak == 1
    assert store.get_habit("h1", two_days_later).streak == 0
    assert store.get_habit("missing") is None


def test_reset_and_delete_habit():
    """Test reset keeps the id and delete removes the habit."""
    store = store_with_days([14, 15])

    reset = store.reset_habit("h1", NOW)
    assert reset.id == "h1"
    assert reset.completed_dates == []
    assert reset.start_date == NOW

    assert store.delete_habit("h1")
    assert store.habits == ()
    assert not store.delete_habit("h1")
    assert store.reset_habit("h1", NOW) is None


def test_complete_mini_mission_early_bonus():
    """Test finishing in half the estimate pays 25 XP."""
    store = MissionStore()
    mission = store.add_mini_mission("Inbox", estimated_minutes=10, now=NOW)

    awarded = store.complete_mini_mission(mission.id, NOW + timedelta(minutes=5))
    assert awarded == 25
    assert store.xp == 25


def test_complete_mini_mission_late():
    """Test finishing after the estimate pays the base award."""
    store = MissionStore()
    mission = store.add_mini_mission("Inbox", estimated_minutes=10, now=NOW)

    assert store.complete_mini_mission(mission.id, NOW + timedelta(minutes=15)) == 15
    assert store.xp == 15


def test_complete_mini_mission_once():
    """Test a second completion pays nothing."""
    store = MissionStore()
    mission = store.add_mini_mission("Inbox", estimated_minutes=10, now=NOW)

    store.complete_mini_mission(mission.id, NOW + timedelta(minutes=5))
    assert store.complete_mini_mission(mission.id, NOW + timedelta(minutes=6)) == 0
    assert store.xp == 25
    assert store.get_mini_mission(mission.id).completed_at == NOW + timedelta(minutes=5)


def test_start_mini_mission_idempotent():
    """Test restarting keeps the original start time."""
    store = MissionStore()
    mission = store.add_mini_mission("Taxes", start_mode=StartMode.LATER, now=NOW)

    store.start_mini_mission(mission.id, NOW)
    store.start_mini_mission(mission.id, NOW + timedelta(minutes=10))
    assert store.get_mini_mission(mission.id).started_at == NOW


def test_extend_mini_mission():
    """Test extending uses the configured default step."""
    store = MissionStore(extend_minutes=5)
    running = store.add_mini_mission("Write", now=NOW)
    pending = store.add_mini_mission("Read", start_mode=StartMode.LATER, now=NOW)

    assert store.extend_mini_mission(running.id).extended_minutes == 5
    assert store.extend_mini_mission(running.id, 10).extended_minutes == 15
    assert store.extend_mini_mission(pending.id, 10).extended_minutes == 0
    assert store.extend_mini_mission("missing", 10) is None


def test_cancel_and_delete_mini_mission():
    """Test cancel respects completion and delete is unconditional."""
    store = MissionStore()
    running = store.add_mini_mission("Write", now=NOW)
    done = store.add_mini_mission("Read", now=NOW)
    store.complete_mini_mission(done.id, NOW)

    assert store.cancel_mini_mission(running.id).status == MiniMissionStatus.CANCELLED
    assert store.cancel_mini_mission(done.id).status == MiniMissionStatus.COMPLETED

    assert store.delete_mini_mission(done.id)
    assert store.get_mini_mission(done.id) is None
    assert not store.delete_mini_mission(done.id)


def test_list_mini_missions_by_tab():
    """Test running, queued and finished tabs."""
    store = MissionStore()
    running = store.add_mini_mission("A", now=NOW)
    queued = store.add_mini_mission("B", start_mode=StartMode.LATER, now=NOW)
    cancelled = store.add_mini_mission("C", now=NOW)
    store.cancel_mini_mission(cancelled.id)

    assert [m.id for m in store.list_mini_missions("running")] == [running.id]
    assert [m.id for m in store.list_mini_missions("queued")] == [queued.id]
    assert [m.id for m in store.list_mini_missions("finished")] == [cancelled.id]
    assert len(store.list_mini_missions()) == 3


def test_subscribers_see_each_change():
    """Test listeners are called with fresh snapshots after mutations."""
    store = MissionStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    habit = store.add_habit("Read", now=NOW)
    store.toggle_completion(habit.id, "2026-03-15", NOW)
    assert len(seen) == 2
    assert seen[-1].xp == 10
    assert seen[-1].habits[0].completed_dates == ["2026-03-15"]

    # Rejected toggles do not notify
    store.toggle_completion(habit.id, "2026-03-01", NOW)
    assert len(seen) == 2

    unsubscribe()
    store.add_habit("Run", now=NOW)
    assert len(seen) == 2


def test_failing_subscriber_does_not_break_mutation():
    """Test a listener error is contained."""
    store = MissionStore()

    def broken(snapshot):
        raise RuntimeError("disk full")

    store.subscribe(broken)
    habit = store.add_habit("Read", now=NOW)
    assert store.get_habit(habit.id) is not None


def test_stats():
    """Test the home screen summary."""
    store = store_with_days([13, 14])
    store.add_mini_mission("A", now=NOW)
    store.add_mini_mission("B", start_mode=StartMode.LATER, now=NOW)
    store.add_xp(130)

    stats = store.stats(NOW)
    assert stats["active_habits"] == 1
    assert stats["completed_habits"] == 0
    assert stats["best_streak"] == 2
    assert stats["running_mini_missions"] == 1
    assert stats["queued_mini_missions"] == 1
    assert stats["finished_mini_missions"] == 0
    assert stats["level"] == 1
    assert stats["level_progress"] == 30


def test_cancelled_mini_mission_cannot_restart_or_pay():
    """Test a cancelled sprint stays cancelled and earns nothing."""
    store = MissionStore()
    mission = store.add_mini_mission("Write", estimated_minutes=10, now=NOW)
    store.cancel_mini_mission(mission.id)

    restarted = store.start_mini_mission(mission.id, NOW + timedelta(minutes=1))
    assert restarted.status == MiniMissionStatus.CANCELLED

    assert store.complete_mini_mission(mission.id, NOW + timedelta(minutes=2)) == 0
    assert store.get_mini_mission(mission.id).status == MiniMissionStatus.CANCELLED
    assert store.xp == 0


def test_records_returned_by_store_are_read_only():
    """Test callers cannot change stored records behind the store's back."""
    store = store_with_days([15])
    mission = store.add_mini_mission("Write", now=NOW)

    with pytest.raises(FrozenInstanceError):
        store.get_mini_mission(mission.id).extended_minutes = 60
    with pytest.raises(FrozenInstanceError):
        store.habits[0].title = "Changed"

    store.habits[0].completed_dates.append("2026-03-14")
    assert store.get_mini_mission(mission.id).extended_minutes == 0
    assert store.get_habit("h1", NOW).completed_dates == ["2026-03-15"]
