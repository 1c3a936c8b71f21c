"""Saves each new store snapshot in the background."""

import asyncio
import logging
from typing import Set

from missioncontrol.db.models import StoreSnapshot
from missioncontrol.db.repository import SnapshotRepository
from missioncontrol.store import MissionStore
from missioncontrol.utils.error_handler import log_persistence_failure

logger = logging.getLogger(__name__)


class SnapshotPersister:
    """Store listener that writes every snapshot to the repository.

    Must be attached from inside a running event loop. Saves are scheduled
    as tasks and never block or fail the mutation that triggered them.
    """

    def __init__(self, repo: SnapshotRepository):
        self.repo = repo
        self._pending: Set[asyncio.Task] = set()
        self._unsubscribe = None

    def attach(self, store: MissionStore) -> None:
        self._unsubscribe = store.subscribe(self)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __call__(self, snapshot: StoreSnapshot) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, snapshot not persisted")
            return

        task = loop.create_task(self.repo.save_snapshot(snapshot), name="snapshot-save")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(log_persistence_failure)

    async def flush(self) -> None:
        """Wait for all scheduled saves to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
