"""Main entry point for Mission Control."""

import asyncio
import logging
import sys
from typing import Tuple

from missioncontrol.config import Config
from missioncontrol.db.persister import SnapshotPersister
from missioncontrol.db.repository import SnapshotRepository
from missioncontrol.engine.alerts import should_fire_alert
from missioncontrol.engine.stats import active_habits
from missioncontrol.engine.streak import habit_progress, streak_tier
from missioncontrol.store import MissionStore
from missioncontrol.utils.constants import XP_PER_LEVEL
from missioncontrol.utils.time_utils import (
    format_countdown,
    format_duration,
    format_elapsed,
    utcnow,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        stream=sys.stdout,
    )


async def open_store() -> Tuple[MissionStore, SnapshotRepository, SnapshotPersister]:
    """Load the persisted state and wire saving on every change.

    Must be called from inside a running event loop; the caller owns the
    returned repository and should close it on shutdown.
    """
    repo = SnapshotRepository(Config.DATABASE_PATH, Config.SNAPSHOT_KEY, Config.TIMEZONE)
    await repo.connect()

    snapshot = await repo.load_snapshot()
    store = MissionStore(
        snapshot, tz=Config.TIMEZONE, extend_minutes=Config.DEFAULT_EXTEND_MINUTES
    )

    persister = SnapshotPersister(repo)
    persister.attach(store)

    return store, repo, persister


async def report_status() -> None:
    """Log a summary of the stored state and any running timers."""
    store, repo, persister = await open_store()
    try:
        stats = store.stats()
        logger.info(
            f"Habits: {stats['active_habits']} active, {stats['completed_habits']} completed, "
            f"best streak {stats['best_streak']}"
        )
        now = utcnow()
        for habit in active_habits(store.list_habits(now)):
            tier = streak_tier(habit.streak)
            tier_label = f" ({tier})" if tier else ""
            running_for = format_elapsed(int((now - habit.start_date).total_seconds() * 1000))
            logger.info(
                f"{habit.title!r}: {len(habit.completed_dates)}/{habit.total_days} days "
                f"({habit_progress(habit):.0%}), streak {habit.streak}"
                f"{tier_label}, running for {running_for}"
            )
        logger.info(
            f"Mini missions: {stats['running_mini_missions']} running, "
            f"{stats['queued_mini_missions']} queued, "
            f"{stats['finished_mini_missions']} finished"
        )
        logger.info(
            f"XP: {stats['xp']} (level {stats['level']}, "
            f"{stats['level_progress']}/{XP_PER_LEVEL} into the level)"
        )

        for alert in store.timer_alerts():
            if should_fire_alert(alert):
                logger.info(f"Time's up: {alert.title!r}")
            else:
                remaining = format_countdown(alert.seconds_until_end * 1000)
                length = format_duration(alert.total_minutes)
                logger.info(f"Running: {alert.title!r} ({length}), {remaining} left")
    finally:
        persister.detach()
        await persister.flush()
        await repo.close()


def main() -> None:
    """Validate configuration and report on the stored state."""
    configure_logging()

    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    asyncio.run(report_status())


if __name__ == "__main__":
    main()
