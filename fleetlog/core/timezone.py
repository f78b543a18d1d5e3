"""Fleet timezone utilities.

Timestamps are stored as naive UTC. Calendar dates (a shift log's day) are
taken from the fleet's local clock, so both must be read in the same zone
before they are compared.
"""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


def fleet_now(timezone_str: str = "UTC") -> datetime:
    """Get current datetime in the fleet timezone.

    Args:
        timezone_str: IANA timezone identifier (e.g., 'America/Mexico_City', 'UTC').

    Returns:
        Timezone-aware datetime in the specified timezone.

    Raises:
        ZoneInfoNotFoundError: If the timezone identifier is invalid.
    """
    return datetime.now(ZoneInfo(timezone_str))


def fleet_today(timezone_str: str = "UTC") -> date:
    """Calendar date on the fleet's local clock."""
    return fleet_now(timezone_str).date()


def to_local(dt: datetime, timezone_str: str = "UTC") -> datetime:
    """Convert a stored datetime to naive local time in the fleet timezone.

    Assumes naive datetimes are UTC.

    Examples:
        >>> to_local(datetime(2024, 1, 11, 1, 0), "America/Mexico_City")
        datetime.datetime(2024, 1, 10, 19, 0)
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(ZoneInfo(timezone_str)).replace(tzinfo=None)
