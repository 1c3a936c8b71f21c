"""Configuration management from environment variables."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from missioncontrol.utils.constants import (
    DEFAULT_EXTEND_MINUTES,
    DEFAULT_SNAPSHOT_KEY,
    DEFAULT_TIMEZONE,
)

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Persistence
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/missioncontrol.db"))
    SNAPSHOT_KEY: str = os.getenv("SNAPSHOT_KEY", DEFAULT_SNAPSHOT_KEY)

    # Calendar days are counted in this zone
    TIMEZONE: str = os.getenv("TIMEZONE", DEFAULT_TIMEZONE)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Mini missions
    DEFAULT_EXTEND_MINUTES: int = int(
        os.getenv("DEFAULT_EXTEND_MINUTES", str(DEFAULT_EXTEND_MINUTES))
    )

    @classmethod
    def validate(cls) -> None:
        """Validate configuration."""
        try:
            ZoneInfo(cls.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown TIMEZONE: {cls.TIMEZONE!r}") from None

        if cls.DEFAULT_EXTEND_MINUTES < 1:
            raise ValueError("DEFAULT_EXTEND_MINUTES must be at least 1")

        if not cls.SNAPSHOT_KEY:
            raise ValueError("SNAPSHOT_KEY cannot be empty")

        # Ensure database directory exists
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
