"""Data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class HabitMode(str, Enum):
    AUTOPILOT = "autopilot"
    MANUAL = "manual"


class HabitStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"  # reserved, not produced by any transition yet


class MiniMissionStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StartMode(str, Enum):
    NOW = "now"
    LATER = "later"


@dataclass(frozen=True)
class Habit:
    """A long-running mission tracked over a fixed number of days.

    Records are immutable; transitions build new ones with `replace`.
    """

    id: str
    title: str
    mode: HabitMode
    start_date: datetime  # UTC
    total_days: int
    description: str | None = None
    end_date: datetime | None = None  # UTC, manual mode only
    completed_dates: list[str] = field(default_factory=list)  # sorted YYYY-MM-DD keys
    streak: int = 0
    is_completed: bool = False
    status: HabitStatus = HabitStatus.ACTIVE


@dataclass(frozen=True)
class MiniMission:
    """A short timed focus sprint."""

    id: str
    title: str
    estimated_minutes: int
    status: MiniMissionStatus
    created_at: datetime  # UTC
    objective: str | None = None
    extended_minutes: int = 0
    scheduled_start_at: datetime | None = None  # UTC
    started_at: datetime | None = None  # UTC, set once
    completed_at: datetime | None = None  # UTC, set once

    @property
    def total_minutes(self) -> int:
        """Allotted duration including extensions."""
        return self.estimated_minutes + self.extended_minutes


@dataclass
class StoreSnapshot:
    """The whole persisted state."""

    habits: list[Habit] = field(default_factory=list)
    mini_missions: list[MiniMission] = field(default_factory=list)
    xp: int = 0
