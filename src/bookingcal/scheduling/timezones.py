"""Timezone helpers for the calendar engine.

All zones are pytz timezones. Wall-clock construction goes through
``localize`` and arithmetic through ``shift`` so DST transitions are
handled the way pytz expects.
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union

import pytz

logger = logging.getLogger(__name__)

TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def try_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Build a timezone from an IANA name.

    Returns:
        The timezone, or None when the name is empty or unknown.
    """
    if not name or not name.strip():
        return None
    try:
        return pytz.timezone(name.strip())
    except pytz.UnknownTimeZoneError:
        return None


def resolve_timezone(
    name: Optional[str],
    fallback: Union[str, tzinfo] = "UTC",
    log: Optional[logging.Logger] = None,
) -> tzinfo:
    """Resolve a configured timezone name, falling back when invalid.

    Args:
        name: Configured IANA timezone name (may be empty).
        fallback: Timezone (or name) used when ``name`` is empty or invalid.
        log: Logger receiving the invalid-name warning.

    Returns:
        A pytz timezone.
    """
    if isinstance(fallback, str):
        fallback = try_timezone(fallback) or pytz.utc

    if not name:
        return fallback

    tz = try_timezone(name)
    if tz is None:
        (log or logger).warning(
            f"Invalid timezone '{name}', falling back to {fallback}"
        )
        return fallback
    return tz


def localize(tz: tzinfo, naive: datetime) -> datetime:
    """Attach ``tz`` to a naive wall-clock datetime."""
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def at_time(tz: tzinfo, day: date, at: time) -> datetime:
    """Get the instant at wall-clock time ``at`` on ``day`` in ``tz``."""
    return localize(tz, datetime.combine(day, at))


def shift(value: datetime, delta: timedelta) -> datetime:
    """Add ``delta`` to an aware datetime, keeping its zone offset correct."""
    result = value + delta
    tz = result.tzinfo
    if hasattr(tz, "normalize"):
        result = tz.normalize(result)
    return result


def to_timezone(value: datetime, tz: tzinfo) -> datetime:
    """Convert an aware datetime to ``tz`` (same instant, different view)."""
    return value.astimezone(tz)


def ensure_aware(value: datetime, tz: tzinfo) -> datetime:
    """Read a naive datetime as wall-clock time in ``tz``."""
    if value.tzinfo is None:
        return localize(tz, value)
    return value


def normalize_date(
    value: Union[date, datetime],
    tz: tzinfo,
    site_timezone: tzinfo,
) -> datetime:
    """Normalize a requested date into the display timezone.

    Plain dates name a calendar day and mean midnight of that day in
    ``tz``. Naive datetimes are read in the site timezone, and the instant
    is then viewed in ``tz``.
    """
    if isinstance(value, datetime):
        moment = ensure_aware(value, site_timezone)
    elif isinstance(value, date):
        return at_time(tz, value, time(0, 0))
    else:
        raise TypeError(f"Expected date or datetime, got {type(value).__name__}")
    return to_timezone(moment, tz)


def parse_time_of_day(value: Optional[str]) -> Optional[time]:
    """Parse "HH:MM" or "HH:MM:SS".

    Returns:
        The parsed time, or None when the value is empty or malformed.
    """
    if not value:
        return None
    text = value.strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def timezone_of(value: datetime) -> tzinfo:
    """Get the zone an aware datetime was localized in."""
    tz = value.tzinfo
    zone = getattr(tz, "zone", None)
    if zone:
        return pytz.timezone(zone)
    return tz
