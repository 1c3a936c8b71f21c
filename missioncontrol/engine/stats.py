"""Dashboard counts and list filters."""

from typing import Iterable, List

from missioncontrol.db.models import Habit, MiniMission, MiniMissionStatus
from missioncontrol.engine.xp import level_for, level_progress_for

RUNNING = {MiniMissionStatus.IN_PROGRESS}
QUEUED = {MiniMissionStatus.PENDING, MiniMissionStatus.SCHEDULED}
FINISHED = {MiniMissionStatus.COMPLETED, MiniMissionStatus.CANCELLED}

MINI_MISSION_TABS = {
    "running": RUNNING,
    "queued": QUEUED,
    "finished": FINISHED,
}


def active_habits(habits: Iterable[Habit]) -> List[Habit]:
    return [h for h in habits if not h.is_completed]


def completed_habits(habits: Iterable[Habit]) -> List[Habit]:
    return [h for h in habits if h.is_completed]


def filter_mini_missions(missions: Iterable[MiniMission], tab: str) -> List[MiniMission]:
    """Missions shown under a list tab: running, queued or finished.

    Raises:
        ValueError: for an unknown tab name
    """
    try:
        statuses = MINI_MISSION_TABS[tab]
    except KeyError:
        raise ValueError(f"Unknown mini mission tab: {tab!r}") from None
    return [m for m in missions if m.status in statuses]


def get_stats(habits: List[Habit], missions: List[MiniMission], xp: int) -> dict:
    """Summary figures for the home screen.

    Habits should already be derived against the current time so that
    streaks broken overnight read as 0.
    """
    stats = {}

    stats['active_habits'] = len(active_habits(habits))
    stats['completed_habits'] = len(completed_habits(habits))
    stats['best_streak'] = max((h.streak for h in habits), default=0)

    for tab in MINI_MISSION_TABS:
        stats[f'{tab}_mini_missions'] = len(filter_mini_missions(missions, tab))

    stats['xp'] = xp
    stats['level'] = level_for(xp)
    stats['level_progress'] = level_progress_for(xp)

    return stats
