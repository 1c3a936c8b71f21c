"""Timer alert data for the external notification scheduler.

The engine never sends notifications itself. The scheduler polls these
helpers to know when each running mini mission's time runs out.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from missioncontrol.db.models import MiniMission, MiniMissionStatus
from missioncontrol.engine.mini_missions import timer_ends_at
from missioncontrol.utils.time_utils import utcnow


@dataclass
class TimerAlert:
    """A "time's up" alert the scheduler should hold for a mission."""

    mission_id: str
    title: str
    ends_at: datetime  # UTC
    total_minutes: int  # including extensions
    seconds_until_end: int  # negative once overdue


def get_timer_alerts(
    missions: Iterable[MiniMission], now: datetime | None = None
) -> List[TimerAlert]:
    """Alerts for every started, in-progress mission, soonest first."""
    if now is None:
        now = utcnow()

    alerts = []
    for mission in missions:
        if mission.status != MiniMissionStatus.IN_PROGRESS:
            continue
        ends_at = timer_ends_at(mission)
        if ends_at is None:
            continue
        alerts.append(
            TimerAlert(
                mission_id=mission.id,
                title=mission.title,
                ends_at=ends_at,
                total_minutes=mission.total_minutes,
                seconds_until_end=int((ends_at - now).total_seconds()),
            )
        )

    alerts.sort(key=lambda a: a.ends_at)
    return alerts


def get_due_alerts(
    missions: Iterable[MiniMission], now: datetime | None = None
) -> List[TimerAlert]:
    """Alerts whose timer has already run out."""
    return [a for a in get_timer_alerts(missions, now) if a.seconds_until_end <= 0]


def should_fire_alert(alert: TimerAlert) -> bool:
    return alert.seconds_until_end <= 0
