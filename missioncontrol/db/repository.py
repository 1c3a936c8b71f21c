"""Durable key-value storage for store snapshots."""

import logging
from pathlib import Path

import aiosqlite

from missioncontrol.db.models import StoreSnapshot
from missioncontrol.db.snapshot import dumps, loads
from missioncontrol.utils.constants import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


class SnapshotRepository:
    """Stores the serialized engine state under a single named key."""

    def __init__(self, db_path: Path, key: str, tz: str = DEFAULT_TIMEZONE):
        self.db_path = db_path
        self.key = key
        self.tz = tz
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection and create the key-value table if missing."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row

        with open(SCHEMA_PATH) as f:
            await self._db.executescript(f.read())
        await self._db.commit()
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise RuntimeError("Database not connected")
        return self._db

    # Raw key-value operations

    async def get_value(self, key: str) -> str | None:
        async with self.db.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
            return row["value"] if row else None

    async def set_value(self, key: str, value: str) -> None:
        await self.db.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = datetime('now')
            """,
            (key, value),
        )
        await self.db.commit()

    async def delete_value(self, key: str) -> None:
        await self.db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await self.db.commit()

    # Snapshot operations

    async def load_snapshot(self) -> StoreSnapshot:
        """Load and migrate the stored snapshot, or an empty one if none exists."""
        text = await self.get_value(self.key)
        if text is None:
            logger.info(f"No snapshot stored under {self.key!r}, starting empty")
            return StoreSnapshot()

        snapshot = loads(text, self.tz)
        logger.info(
            f"Loaded snapshot: {len(snapshot.habits)} habits, "
            f"{len(snapshot.mini_missions)} mini missions, {snapshot.xp} XP"
        )
        return snapshot

    async def save_snapshot(self, snapshot: StoreSnapshot) -> None:
        """Replace the stored snapshot."""
        await self.set_value(self.key, dumps(snapshot))
        logger.debug(f"Saved snapshot under {self.key!r}")
