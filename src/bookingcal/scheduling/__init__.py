"""Calendar engine: timezone handling, daily aggregation and event formatting."""

from bookingcal.scheduling.timezones import (
    normalize_date,
    parse_time_of_day,
    resolve_timezone,
    try_timezone,
)
from bookingcal.scheduling.events import (
    build_events,
    format_customer_name,
    normalize_color,
)
from bookingcal.scheduling.calendar_service import CalendarService

__all__ = [
    # Aggregation
    "CalendarService",
    # Events
    "build_events",
    "format_customer_name",
    "normalize_color",
    # Timezones
    "normalize_date",
    "parse_time_of_day",
    "resolve_timezone",
    "try_timezone",
]
