"""Mini mission state machine and countdown derivation.

States flow pending/scheduled -> in_progress -> completed | cancelled.
Transitions are pure: each returns a new record, or the same record
when the transition does not apply in the current state.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta

from missioncontrol.db.models import MiniMission, MiniMissionStatus, StartMode
from missioncontrol.engine.habits import new_id
from missioncontrol.utils.constants import DEFAULT_ESTIMATED_MINUTES, MIN_ESTIMATED_MINUTES
from missioncontrol.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

TERMINAL = (MiniMissionStatus.COMPLETED, MiniMissionStatus.CANCELLED)


def sanitize_minutes(minutes: object) -> int:
    """Floor a minute count and clamp it to at least 1.

    Raises:
        ValueError: if `minutes` is not a finite number
    """
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
        raise ValueError(f"Estimated minutes must be a number, got {minutes!r}")
    if not math.isfinite(minutes):
        raise ValueError(f"Estimated minutes must be finite, got {minutes!r}")
    return max(MIN_ESTIMATED_MINUTES, math.floor(minutes))


def create_mini_mission(
    title: str,
    objective: str | None = None,
    estimated_minutes: object = DEFAULT_ESTIMATED_MINUTES,
    start_mode: StartMode = StartMode.NOW,
    now: datetime | None = None,
) -> MiniMission:
    """Build a mini mission, either running immediately or queued for later.

    Raises:
        ValueError: if the title is empty or the estimate is not a number
    """
    if now is None:
        now = utcnow()

    title = (title or "").strip()
    if not title:
        raise ValueError("Mini mission title cannot be empty")

    minutes = sanitize_minutes(estimated_minutes)

    if StartMode(start_mode) == StartMode.NOW:
        return MiniMission(
            id=new_id(),
            title=title,
            objective=objective,
            estimated_minutes=minutes,
            status=MiniMissionStatus.IN_PROGRESS,
            created_at=now,
            started_at=now,
        )

    # Actual deferred scheduling belongs to the notification scheduler
    return MiniMission(
        id=new_id(),
        title=title,
        objective=objective,
        estimated_minutes=minutes,
        status=MiniMissionStatus.PENDING,
        created_at=now,
        scheduled_start_at=now,
    )


def start(mission: MiniMission, now: datetime | None = None) -> MiniMission:
    """Move to in_progress. The first start time is never overwritten.

    Completed and cancelled missions are final and are left as they are.
    """
    if now is None:
        now = utcnow()

    if mission.status in TERMINAL:
        logger.debug(f"Ignoring start of {mission.status.value} mini mission {mission.id}")
        return mission

    return replace(
        mission,
        status=MiniMissionStatus.IN_PROGRESS,
        started_at=mission.started_at or now,
    )


def finished_early(mission: MiniMission) -> bool:
    """Whether a completed mission beat its allotted time."""
    if mission.started_at is None or mission.completed_at is None:
        return False
    allotted = timedelta(minutes=mission.total_minutes)
    return mission.completed_at - mission.started_at < allotted


def complete(mission: MiniMission, now: datetime | None = None) -> MiniMission:
    """Mark completed, backfilling the start time if it was never set.

    Completing twice is a no-op so the first completion time stands, and
    cancelled missions stay cancelled.
    """
    if now is None:
        now = utcnow()

    if mission.status in TERMINAL:
        logger.debug(f"Ignoring complete of {mission.status.value} mini mission {mission.id}")
        return mission

    return replace(
        mission,
        status=MiniMissionStatus.COMPLETED,
        started_at=mission.started_at or now,
        completed_at=now,
    )


def extend(mission: MiniMission, extra_minutes: object) -> MiniMission:
    """Add time to a running mission; ignored in any other state."""
    if mission.status != MiniMissionStatus.IN_PROGRESS:
        logger.debug(f"Ignoring extend of {mission.status.value} mini mission {mission.id}")
        return mission

    if isinstance(extra_minutes, bool) or not isinstance(extra_minutes, (int, float)):
        return mission
    if not math.isfinite(extra_minutes) or extra_minutes < 1:
        return mission

    return replace(
        mission, extended_minutes=mission.extended_minutes + math.floor(extra_minutes)
    )


def cancel(mission: MiniMission) -> MiniMission:
    """Cancel unless already completed."""
    if mission.status == MiniMissionStatus.COMPLETED:
        logger.debug(f"Ignoring cancel of completed mini mission {mission.id}")
        return mission
    return replace(mission, status=MiniMissionStatus.CANCELLED)


# Countdown derivation


def total_allotted_ms(mission: MiniMission) -> int:
    return mission.total_minutes * 60 * 1000


def timer_ends_at(mission: MiniMission) -> datetime | None:
    """When the allotted time runs out, or None if not started."""
    if mission.started_at is None:
        return None
    return mission.started_at + timedelta(minutes=mission.total_minutes)


def _anchor(mission: MiniMission, now: datetime) -> datetime:
    # Completed missions freeze at their completion time
    if mission.status == MiniMissionStatus.COMPLETED and mission.completed_at:
        return mission.completed_at
    return now


def remaining_ms(mission: MiniMission, now: datetime | None = None) -> int:
    """Milliseconds left on the timer, never negative."""
    if now is None:
        now = utcnow()

    ends_at = timer_ends_at(mission)
    if ends_at is None:
        return total_allotted_ms(mission)

    delta = ends_at - _anchor(mission, now)
    return max(0, int(delta.total_seconds() * 1000))


def elapsed_ms(mission: MiniMission, now: datetime | None = None) -> int:
    """Milliseconds since the mission started, 0 if not started."""
    if now is None:
        now = utcnow()

    if mission.started_at is None:
        return 0
    delta = _anchor(mission, now) - mission.started_at
    return max(0, int(delta.total_seconds() * 1000))


def progress(mission: MiniMission, now: datetime | None = None) -> float:
    """Fraction of the allotted time used, clamped to [0, 1]."""
    total = total_allotted_ms(mission)
    if total <= 0:
        return 0.0
    return min(1.0, max(0.0, elapsed_ms(mission, now) / total))


def is_time_up(mission: MiniMission, now: datetime | None = None) -> bool:
    """A running mission whose timer hit zero.

    This does not change the mission's status; it stays in progress until
    completed or cancelled.
    """
    return (
        mission.status == MiniMissionStatus.IN_PROGRESS
        and mission.started_at is not None
        and remaining_ms(mission, now) == 0
    )


def early_finish_ms(mission: MiniMission) -> int:
    """How far ahead of the allotted time a completed mission finished."""
    if mission.status != MiniMissionStatus.COMPLETED:
        return 0
    if mission.started_at is None or mission.completed_at is None:
        return 0
    actual = mission.completed_at - mission.started_at
    saved = timedelta(minutes=mission.total_minutes) - actual
    return max(0, int(saved.total_seconds() * 1000))
