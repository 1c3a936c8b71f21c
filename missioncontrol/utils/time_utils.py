"""Time, calendar-day and countdown utilities."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

DAY_KEY_FORMAT = "%Y-%m-%d"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(ZoneInfo("UTC"))


def to_utc(dt: datetime, tz: str) -> datetime:
    """Convert a datetime to UTC, assuming `tz` for naive values."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz))
    return dt.astimezone(ZoneInfo("UTC"))


def from_utc(dt: datetime, tz: str) -> datetime:
    """Convert a UTC datetime to the given timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo(tz))


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts both Python ``isoformat()`` output and JavaScript
    ``toISOString()`` output (``2026-03-15T12:00:00.000Z``). Naive
    values are taken as UTC.
    """
    dt = isoparse(value)
    return to_utc(dt, "UTC")


def format_timestamp(dt: datetime) -> str:
    """Serialize a datetime as an ISO-8601 UTC string."""
    return to_utc(dt, "UTC").isoformat()


def day_key(d: date) -> str:
    """Calendar-day key (YYYY-MM-DD) for a date."""
    return d.strftime(DAY_KEY_FORMAT)


def parse_day_key(key: str) -> date | None:
    """Parse a YYYY-MM-DD key, returning None if it is not a valid day."""
    try:
        return datetime.strptime(key, DAY_KEY_FORMAT).date()
    except (TypeError, ValueError):
        return None


def local_date(dt: datetime, tz: str) -> date:
    """The calendar day `dt` falls on in the given timezone."""
    return from_utc(dt, tz).date()


def add_calendar_days(dt: datetime, days: int, tz: str) -> datetime:
    """Add whole calendar days in local time, returning UTC.

    Wall-clock time is preserved across DST changes and month/year
    boundaries roll over.
    """
    local = from_utc(dt, tz) + relativedelta(days=days)
    return to_utc(local, tz)


def format_duration(minutes: int) -> str:
    """Format minutes into a human-readable duration.

    Examples:
        15 -> "15 minutes"
        60 -> "1 hour"
        90 -> "1.5 hours"
    """
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    hours = minutes / 60
    if hours == int(hours):
        return f"{int(hours)} hour{'s' if hours != 1 else ''}"
    return f"{hours:.1f} hours"


def format_countdown(ms: int) -> str:
    """Format a remaining time in milliseconds as MM:SS, or H:MM:SS past an hour.

    Partial seconds round up so a running timer never shows 00:00 early.
    """
    total_seconds = max(0, -(-ms // 1000))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_elapsed(ms: int) -> str:
    """Format an elapsed time as DD:HH:MM:SS."""
    if ms < 0:
        return "00:00:00:00"
    total_seconds = ms // 1000
    days, rest = divmod(total_seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{days:02d}:{hours:02d}:{minutes:02d}:{seconds:02d}"
