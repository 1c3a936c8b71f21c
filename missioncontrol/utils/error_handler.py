"""Error handling for background persistence."""

import asyncio
import logging
import traceback

logger = logging.getLogger(__name__)


def log_persistence_failure(task: "asyncio.Task[None]") -> None:
    """Done-callback for snapshot save tasks.

    Persistence is fire-and-forget: a failed save is logged here and never
    reaches the store or its callers. The next mutation saves the full
    state again.
    """
    if task.cancelled():
        logger.warning(f"Snapshot save {task.get_name()} was cancelled")
        return

    error = task.exception()
    if error is None:
        return

    tb_list = traceback.format_exception(None, error, error.__traceback__)
    tb_string = "".join(tb_list)

    logger.error(f"Failed to persist snapshot: {error}")
    logger.error(f"Traceback:\n{tb_string}")
