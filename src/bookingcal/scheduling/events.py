"""Calendar event formatting.

Turns appointments into display-ready events for the resource calendar
widget. No I/O happens here and nothing in this module raises for bad
data: malformed colours fall back to defaults.
"""

import re
from collections.abc import Iterable
from datetime import tzinfo
from typing import Optional

import pytz

from bookingcal.domain.models import Appointment, CalendarEvent
from bookingcal.scheduling.timezones import ensure_aware, to_timezone

DEFAULT_BACKGROUND_COLOR = "#1d4ed8"
DEFAULT_TEXT_COLOR = "#ffffff"
DEFAULT_EVENT_TITLE = "Appointment"

EVENT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def normalize_color(value: Optional[str], fallback: str = DEFAULT_BACKGROUND_COLOR) -> str:
    """Normalize a colour into "#RGB" / "#RRGGBB" form.

    The leading "#" is optional on input. Empty or malformed values yield
    ``fallback``.
    """
    if not value:
        return fallback
    match = _HEX_COLOR.match(value.strip())
    if match is None:
        return fallback
    return f"#{match.group(1)}"


def format_customer_name(appointment: Appointment) -> str:
    """Get the customer's display name.

    Prefers "first last", then the account name, then an empty string.
    """
    parts = [
        part
        for part in (appointment.customer_first_name, appointment.customer_last_name)
        if part
    ]
    if parts:
        return " ".join(parts)
    return appointment.customer_account_name or ""


def build_events(
    appointments: Iterable[Appointment],
    display_timezone: tzinfo,
    storage_timezone: tzinfo = pytz.utc,
    placeholder_title: str = DEFAULT_EVENT_TITLE,
) -> list[CalendarEvent]:
    """Convert appointments into calendar events.

    Appointments without an assigned employee are skipped since the calendar
    has no resource row to attach them to.

    Args:
        appointments: Appointments to render.
        display_timezone: Timezone the event times are shown in.
        storage_timezone: Zone naive appointment datetimes are read in.
        placeholder_title: Title used when the service has no name
            (pass a translated string here).

    Returns:
        Events in input order.
    """
    events = []

    for appointment in appointments:
        employee_id = appointment.employee_id
        if employee_id is None:
            continue

        start = to_timezone(
            ensure_aware(appointment.scheduled_start, storage_timezone), display_timezone
        )
        end = to_timezone(
            ensure_aware(appointment.scheduled_end, storage_timezone), display_timezone
        )

        events.append(
            CalendarEvent(
                id=appointment.id,
                resource_id=employee_id,
                title=appointment.service_name or placeholder_title,
                start=start.strftime(EVENT_DATETIME_FORMAT),
                end=end.strftime(EVENT_DATETIME_FORMAT),
                color=normalize_color(appointment.service_background_color),
                text_color=normalize_color(
                    appointment.service_text_color, DEFAULT_TEXT_COLOR
                ),
                customer=format_customer_name(appointment),
                time_range=f"{start.strftime('%H:%M')}–{end.strftime('%H:%M')}",
                service=appointment.service_name,
                service_id=appointment.service_id,
                employee=appointment.employee_name,
                status=appointment.status,
                customer_email=appointment.customer_email,
                customer_phone=appointment.customer_phone,
            )
        )

    return events
