"""UTC-everywhere time handling, with business dates derived at the edge."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """
    Convert a UTC datetime to a local timezone.

    Args:
        dt: Timezone-aware datetime
        tz_name: IANA timezone name (e.g., "Asia/Kolkata")

    Raises:
        ValueError: If datetime is naive or timezone name is invalid
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime. Datetime must be timezone-aware."
        )

    try:
        local_tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {tz_name}")

    return dt.astimezone(local_tz)


def business_today(tz_name: str, at: datetime | None = None) -> date:
    """
    Calendar date in the business timezone.

    This is the only place the ledger reads the clock: it is the default
    as-of date when a caller does not pass one.

    Args:
        tz_name: IANA timezone name
        at: Instant to evaluate (defaults to now)
    """
    return to_local(at or now_utc(), tz_name).date()
