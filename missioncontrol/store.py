"""The mission store: one authoritative state container for the UI layer.

Every mutation replaces the affected record in a single step, recomputes
its derived fields, awards XP for completions and then notifies
subscribers with the new snapshot. Unknown ids are no-ops, never errors.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Tuple

from missioncontrol.db.models import Habit, HabitMode, MiniMission, StartMode, StoreSnapshot
from missioncontrol.engine import habits as habit_engine
from missioncontrol.engine import mini_missions as mini_engine
from missioncontrol.engine.alerts import TimerAlert, get_timer_alerts
from missioncontrol.engine.stats import filter_mini_missions, get_stats
from missioncontrol.engine.streak import derive, is_within_edit_window
from missioncontrol.engine.xp import XpLedger, habit_day_xp, mini_mission_xp
from missioncontrol.utils.constants import (
    DEFAULT_ESTIMATED_MINUTES,
    DEFAULT_EXTEND_MINUTES,
    DEFAULT_TIMEZONE,
)
from missioncontrol.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

Listener = Callable[[StoreSnapshot], None]


class MissionStore:
    """Habits, mini missions and the XP ledger."""

    def __init__(
        self,
        snapshot: StoreSnapshot | None = None,
        tz: str = DEFAULT_TIMEZONE,
        extend_minutes: int = DEFAULT_EXTEND_MINUTES,
    ):
        if snapshot is None:
            snapshot = StoreSnapshot()
        self.tz = tz
        self.extend_minutes = extend_minutes
        self._habits: List[Habit] = list(snapshot.habits)
        self._mini_missions: List[MiniMission] = list(snapshot.mini_missions)
        self._ledger = XpLedger(snapshot.xp)
        self._listeners: List[Listener] = []

    # Subscription

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the new snapshot after each change.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            habits=[replace(h, completed_dates=list(h.completed_dates)) for h in self._habits],
            mini_missions=list(self._mini_missions),
            xp=self._ledger.xp,
        )

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Store listener {listener!r} failed")

    # XP

    @property
    def xp(self) -> int:
        return self._ledger.xp

    @property
    def level(self) -> int:
        return self._ledger.level

    @property
    def level_progress(self) -> int:
        return self._ledger.level_progress

    @property
    def xp_to_next_level(self) -> int:
        return self._ledger.xp_to_next_level

    def add_xp(self, amount: int) -> int:
        total = self._ledger.add_xp(amount)
        self._notify()
        return total

    # Habits

    @property
    def habits(self) -> Tuple[Habit, ...]:
        """Stored habits, with derived fields as of their last mutation."""
        return tuple(replace(h, completed_dates=list(h.completed_dates)) for h in self._habits)

    def _find_habit(self, habit_id: str) -> Habit | None:
        return next((h for h in self._habits if h.id == habit_id), None)

    def _replace_habit(self, updated: Habit) -> None:
        self._habits = [updated if h.id == updated.id else h for h in self._habits]

    def get_habit(self, habit_id: str, now: datetime | None = None) -> Habit | None:
        """Look up a habit with its streak recomputed against `now`."""
        habit = self._find_habit(habit_id)
        if habit is None:
            return None
        return derive(habit, now, self.tz)

    def list_habits(self, now: datetime | None = None) -> List[Habit]:
        return [derive(h, now, self.tz) for h in self._habits]

    def add_habit(
        self,
        title: str,
        description: str | None = None,
        mode: HabitMode = HabitMode.AUTOPILOT,
        total_days: object = None,
        now: datetime | None = None,
    ) -> Habit:
        """Create a habit. No XP is awarded for creation.

        Raises:
            ValueError: if the title is empty
        """
        habit = habit_engine.create_habit(title, description, mode, total_days, now, self.tz)
        self._habits = [*self._habits, habit]
        logger.info(f"Created {habit.mode.value} habit {habit.id} ({habit.total_days} days)")
        self._notify()
        return habit

    def toggle_completion(
        self, habit_id: str, day_key: str, now: datetime | None = None
    ) -> bool:
        """Check or uncheck a day on a habit.

        Returns:
            False if the habit does not exist or the day is locked (outside
            today/yesterday); True if the toggle was applied
        """
        if now is None:
            now = utcnow()

        habit = self._find_habit(habit_id)
        if habit is None:
            return False
        if not is_within_edit_window(day_key, now, self.tz):
            logger.debug(f"Toggle rejected: {day_key} is locked for habit {habit_id}")
            return False

        updated, added = habit_engine.toggle_day(habit, day_key, now, self.tz)
        self._replace_habit(updated)

        # Unchecking keeps previously awarded XP
        if added and day_key in updated.completed_dates:
            self._ledger.add_xp(habit_day_xp(updated.streak))

        if updated.is_completed and not habit.is_completed:
            logger.info(f"Habit {habit_id} completed all {updated.total_days} days")

        self._notify()
        return True

    def reset_habit(self, habit_id: str, now: datetime | None = None) -> Habit | None:
        habit = self._find_habit(habit_id)
        if habit is None:
            return None
        updated = habit_engine.reset_habit(habit, now, self.tz)
        self._replace_habit(updated)
        logger.info(f"Reset habit {habit_id}")
        self._notify()
        return updated

    def delete_habit(self, habit_id: str) -> bool:
        if self._find_habit(habit_id) is None:
            return False
        self._habits = [h for h in self._habits if h.id != habit_id]
        logger.info(f"Deleted habit {habit_id}")
        self._notify()
        return True

    # Mini missions

    @property
    def mini_missions(self) -> Tuple[MiniMission, ...]:
        return tuple(self._mini_missions)

    def _find_mini_mission(self, mission_id: str) -> MiniMission | None:
        return next((m for m in self._mini_missions if m.id == mission_id), None)

    def _apply(self, mission_id: str, transition) -> MiniMission | None:
        """Run a transition on a mission, storing and announcing any change."""
        mission = self._find_mini_mission(mission_id)
        if mission is None:
            return None

        updated = transition(mission)
        if updated == mission:
            return mission

        self._mini_missions = [
            updated if m.id == mission_id else m for m in self._mini_missions
        ]
        self._notify()
        return updated

    def get_mini_mission(self, mission_id: str) -> MiniMission | None:
        return self._find_mini_mission(mission_id)

    def list_mini_missions(self, tab: str | None = None) -> List[MiniMission]:
        """All mini missions, or those under a running/queued/finished tab."""
        if tab is None:
            return list(self._mini_missions)
        return filter_mini_missions(self._mini_missions, tab)

    def add_mini_mission(
        self,
        title: str,
        objective: str | None = None,
        estimated_minutes: object = DEFAULT_ESTIMATED_MINUTES,
        start_mode: StartMode = StartMode.NOW,
        now: datetime | None = None,
    ) -> MiniMission:
        """Create a mini mission.

        Raises:
            ValueError: if the title is empty or the estimate is not a number
        """
        mission = mini_engine.create_mini_mission(
            title, objective, estimated_minutes, start_mode, now
        )
        self._mini_missions = [*self._mini_missions, mission]
        logger.info(
            f"Created mini mission {mission.id} "
            f"({mission.estimated_minutes} min, {mission.status.value})"
        )
        self._notify()
        return mission

    def start_mini_mission(
        self, mission_id: str, now: datetime | None = None
    ) -> MiniMission | None:
        return self._apply(mission_id, lambda m: mini_engine.start(m, now))

    def complete_mini_mission(self, mission_id: str, now: datetime | None = None) -> int:
        """Complete a mission and award XP.

        Returns:
            XP awarded; 0 if the mission does not exist or was already completed
        """
        mission = self._find_mini_mission(mission_id)
        if mission is None:
            return 0

        updated = mini_engine.complete(mission, now)
        if updated is mission:
            return 0

        awarded = mini_mission_xp(mini_engine.finished_early(updated))
        self._mini_missions = [
            updated if m.id == mission_id else m for m in self._mini_missions
        ]
        self._ledger.add_xp(awarded)
        logger.info(f"Completed mini mission {mission_id} (+{awarded} XP)")
        self._notify()
        return awarded

    def extend_mini_mission(
        self, mission_id: str, extra_minutes: object = None
    ) -> MiniMission | None:
        """Add time to a running mission, by default the configured step."""
        if extra_minutes is None:
            extra_minutes = self.extend_minutes
        return self._apply(mission_id, lambda m: mini_engine.extend(m, extra_minutes))

    def cancel_mini_mission(self, mission_id: str) -> MiniMission | None:
        return self._apply(mission_id, mini_engine.cancel)

    def delete_mini_mission(self, mission_id: str) -> bool:
        if self._find_mini_mission(mission_id) is None:
            return False
        self._mini_missions = [m for m in self._mini_missions if m.id != mission_id]
        logger.info(f"Deleted mini mission {mission_id}")
        self._notify()
        return True

    # Read models

    def timer_alerts(self, now: datetime | None = None) -> List[TimerAlert]:
        return get_timer_alerts(self._mini_missions, now)

    def stats(self, now: datetime | None = None) -> dict:
        return get_stats(self.list_habits(now), self._mini_missions, self.xp)
