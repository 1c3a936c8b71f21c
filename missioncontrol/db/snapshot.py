"""Snapshot encoding and the legacy migration pass.

The whole state is stored as one JSON document:

    {"habits": [...], "miniMissions": [...], "xp": 0}

Field names are camelCase so snapshots written by earlier versions of
the app load unchanged.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List

from missioncontrol.db.models import (
    Habit,
    HabitMode,
    HabitStatus,
    MiniMission,
    MiniMissionStatus,
    StoreSnapshot,
)
from missioncontrol.engine.habits import compute_end_date
from missioncontrol.engine.streak import normalize_dates
from missioncontrol.utils.constants import AUTOPILOT_TOTAL_DAYS, DEFAULT_TIMEZONE
from missioncontrol.utils.time_utils import format_timestamp, parse_timestamp, utcnow

logger = logging.getLogger(__name__)


def _ts(value) -> str | None:
    return format_timestamp(value) if value else None


def _parse_ts(value) -> datetime | None:
    return parse_timestamp(value) if value else None


def _enum(enum_cls, value, default, record_id):
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(
            f"Unknown {enum_cls.__name__} {value!r} on record {record_id}, "
            f"using {default.value}"
        )
        return default


# Encoding


def habit_to_dict(habit: Habit) -> Dict[str, Any]:
    return {
        "id": habit.id,
        "title": habit.title,
        "description": habit.description,
        "mode": habit.mode.value,
        "startDate": _ts(habit.start_date),
        "endDate": _ts(habit.end_date),
        "totalDays": habit.total_days,
        "completedDates": list(habit.completed_dates),
        "streak": habit.streak,
        "isCompleted": habit.is_completed,
        "status": habit.status.value,
    }


def mini_mission_to_dict(mission: MiniMission) -> Dict[str, Any]:
    return {
        "id": mission.id,
        "title": mission.title,
        "objective": mission.objective,
        "estimatedMinutes": mission.estimated_minutes,
        "extendedMinutes": mission.extended_minutes,
        "status": mission.status.value,
        "createdAt": _ts(mission.created_at),
        "scheduledStartAt": _ts(mission.scheduled_start_at),
        "startedAt": _ts(mission.started_at),
        "completedAt": _ts(mission.completed_at),
    }


def snapshot_to_dict(snapshot: StoreSnapshot) -> Dict[str, Any]:
    return {
        "habits": [habit_to_dict(h) for h in snapshot.habits],
        "miniMissions": [mini_mission_to_dict(m) for m in snapshot.mini_missions],
        "xp": snapshot.xp,
    }


def dumps(snapshot: StoreSnapshot) -> str:
    """Serialize a snapshot to JSON text."""
    return json.dumps(snapshot_to_dict(snapshot))


# Migration


def migrate(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in fields that older snapshots did not have.

    - habits without ``mode`` are autopilot, without ``totalDays`` are 21 days
    - mini missions without ``extendedMinutes`` have no extension
    - a snapshot without ``xp`` starts at 0

    Snapshots wrapped in a persistence envelope (``{"state": {...}}``)
    are unwrapped first.
    """
    if isinstance(raw.get("state"), dict):
        raw = raw["state"]

    habits = []
    for record in raw.get("habits") or []:
        record = dict(record)
        record.setdefault("mode", HabitMode.AUTOPILOT.value)
        if record.get("totalDays") is None:
            record["totalDays"] = AUTOPILOT_TOTAL_DAYS
        habits.append(record)

    missions = []
    for record in raw.get("miniMissions") or []:
        record = dict(record)
        if record.get("extendedMinutes") is None:
            record["extendedMinutes"] = 0
        missions.append(record)

    xp = raw.get("xp")
    if not isinstance(xp, int) or isinstance(xp, bool) or xp < 0:
        if xp is not None:
            logger.warning(f"Discarding invalid xp value {xp!r}")
        xp = 0

    return {"habits": habits, "miniMissions": missions, "xp": xp}


# Decoding


def habit_from_dict(record: Dict[str, Any], tz: str = DEFAULT_TIMEZONE) -> Habit:
    """Build a Habit from a migrated record.

    A manual habit missing its end date gets one counted in calendar days
    of `tz`.

    Raises:
        KeyError: if the record has no id
    """
    habit_id = record["id"]
    mode = _enum(HabitMode, record.get("mode"), HabitMode.AUTOPILOT, habit_id)
    start_date = _parse_ts(record.get("startDate")) or utcnow()
    total_days = int(record.get("totalDays") or AUTOPILOT_TOTAL_DAYS)

    end_date = _parse_ts(record.get("endDate"))
    if mode == HabitMode.MANUAL and end_date is None:
        end_date = compute_end_date(mode, start_date, total_days, tz)
    elif mode != HabitMode.MANUAL:
        end_date = None

    completed_dates = normalize_dates(record.get("completedDates") or [])
    is_completed = len(completed_dates) >= total_days

    status = _enum(HabitStatus, record.get("status"), HabitStatus.ACTIVE, habit_id)
    if status != HabitStatus.FAILED:
        status = HabitStatus.COMPLETED if is_completed else HabitStatus.ACTIVE

    return Habit(
        id=habit_id,
        title=record.get("title") or "",
        description=record.get("description"),
        mode=mode,
        start_date=start_date,
        end_date=end_date,
        total_days=total_days,
        completed_dates=completed_dates,
        streak=int(record.get("streak") or 0),
        is_completed=is_completed,
        status=status,
    )


def mini_mission_from_dict(record: Dict[str, Any]) -> MiniMission:
    """Build a MiniMission from a migrated record.

    Raises:
        KeyError: if the record has no id
    """
    mission_id = record["id"]
    return MiniMission(
        id=mission_id,
        title=record.get("title") or "",
        objective=record.get("objective"),
        estimated_minutes=max(1, int(record.get("estimatedMinutes") or 1)),
        extended_minutes=max(0, int(record.get("extendedMinutes") or 0)),
        status=_enum(
            MiniMissionStatus, record.get("status"), MiniMissionStatus.PENDING, mission_id
        ),
        created_at=_parse_ts(record.get("createdAt")) or utcnow(),
        scheduled_start_at=_parse_ts(record.get("scheduledStartAt")),
        started_at=_parse_ts(record.get("startedAt")),
        completed_at=_parse_ts(record.get("completedAt")),
    )


def _decode_all(records: List[Dict[str, Any]], decoder, kind: str) -> list:
    decoded = []
    for record in records:
        try:
            decoded.append(decoder(record))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed {kind} record: {e!r}")
    return decoded


def snapshot_from_dict(raw: Dict[str, Any], tz: str = DEFAULT_TIMEZONE) -> StoreSnapshot:
    """Migrate and decode a raw snapshot document."""
    data = migrate(raw)
    return StoreSnapshot(
        habits=_decode_all(data["habits"], lambda r: habit_from_dict(r, tz), "habit"),
        mini_missions=_decode_all(data["miniMissions"], mini_mission_from_dict, "mini mission"),
        xp=data["xp"],
    )


def loads(text: str, tz: str = DEFAULT_TIMEZONE) -> StoreSnapshot:
    """Parse JSON text into a snapshot, running the migration pass."""
    raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("Snapshot must be a JSON object")
    return snapshot_from_dict(raw, tz)
