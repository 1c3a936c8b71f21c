"""XP awards and the running XP ledger."""

import logging

from missioncontrol.utils.constants import (
    EARLY_FINISH_BONUS_XP,
    HABIT_DAY_XP,
    MINI_MISSION_XP,
    STREAK_MILESTONE_BONUS,
    WEEKLY_STREAK_BONUS,
    WEEKLY_STREAK_MIN,
    XP_PER_LEVEL,
)

logger = logging.getLogger(__name__)


def streak_bonus(streak: int) -> int:
    """Bonus XP for reaching `streak` consecutive days.

    Named milestones (7, 14, 21) pay their own bonus; every other
    multiple of 7 pays the weekly bonus.
    """
    if streak in STREAK_MILESTONE_BONUS:
        return STREAK_MILESTONE_BONUS[streak]
    if streak >= WEEKLY_STREAK_MIN and streak % 7 == 0:
        return WEEKLY_STREAK_BONUS
    return 0


def habit_day_xp(streak: int) -> int:
    """XP for checking off a habit day that brought the streak to `streak`."""
    return HABIT_DAY_XP + streak_bonus(streak)


def mini_mission_xp(finished_early: bool) -> int:
    """XP for completing a mini mission."""
    return MINI_MISSION_XP + (EARLY_FINISH_BONUS_XP if finished_early else 0)


def level_for(xp: int) -> int:
    return xp // XP_PER_LEVEL


def level_progress_for(xp: int) -> int:
    return xp % XP_PER_LEVEL


class XpLedger:
    """Monotonic XP accumulator.

    XP is never subtracted: unchecking a habit day keeps what it earned.
    """

    def __init__(self, xp: int = 0):
        if xp < 0:
            raise ValueError("XP cannot be negative")
        self._xp = xp

    @property
    def xp(self) -> int:
        return self._xp

    @property
    def level(self) -> int:
        return level_for(self._xp)

    @property
    def level_progress(self) -> int:
        """XP earned within the current level."""
        return level_progress_for(self._xp)

    @property
    def xp_to_next_level(self) -> int:
        return XP_PER_LEVEL - self.level_progress

    def add_xp(self, amount: int) -> int:
        """Add a non-negative amount and return the new total."""
        if amount < 0:
            raise ValueError("XP awards must be non-negative")
        before = self.level
        self._xp += amount
        if self.level > before:
            logger.info(f"Level up: {before} -> {self.level} ({self._xp} XP)")
        return self._xp
