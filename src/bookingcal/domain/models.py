"""Domain models for the booking calendar.

This module contains the value objects the calendar engine reads from its
providers (locations, employees, appointments, business hours) and the
records it produces (daily schedules, calendar events, view windows).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Optional

STORAGE_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def as_bool(value: Any) -> bool:
    """Read a stored flag, accepting "1", "true", "yes" and "on" strings."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass
class ServiceError:
    """Error value returned by providers instead of a record.

    The calendar engine hands these back to its caller untouched, so the
    ``code`` is the stable part callers should branch on.

    Attributes:
        code: Machine-readable error code (e.g. "location_not_found").
        message: Human-readable description.
        data: Extra context such as an HTTP status hint.
    """

    code: str
    message: str = ""
    data: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(frozen=True)
class Location:
    """A physical place where employees serve customers.

    Attributes:
        id: Location identifier.
        name: Display name.
        timezone: IANA timezone name. None or empty means the site default.
        address: Postal address.
        phone: Contact phone.
        is_deleted: Soft delete flag.
    """

    id: int
    name: str
    timezone: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    is_deleted: bool = False


@dataclass(frozen=True)
class Employee:
    """A staff member that appointments can be assigned to.

    Attributes:
        id: Employee identifier.
        name: Display name.
        location_ids: Locations this employee serves.
        visibility: Listing visibility ("public", "private" or "archived").
        is_deleted: Soft delete flag.
    """

    id: int
    name: str
    location_ids: frozenset[int] = frozenset()
    visibility: str = "public"
    is_deleted: bool = False

    def serves_location(self, location_id: int) -> bool:
        """Check whether the employee is assigned to a location."""
        return location_id in self.location_ids


@dataclass(frozen=True)
class DayHours:
    """Business hours for one weekday of a location.

    ``open`` and ``close`` are time-of-day strings ("09:00" or "09:00:00").
    Empty strings mean "not configured".
    """

    open: str = ""
    close: str = ""
    is_closed: bool = False

    @classmethod
    def closed(cls) -> "DayHours":
        """Create the entry used for weekdays with no configured hours."""
        return cls(open="", close="", is_closed=True)

    @classmethod
    def from_mapping(cls, data: Mapping) -> "DayHours":
        """Create from an ``{open, close, is_closed}`` mapping."""
        return cls(
            open=str(data.get("open") or ""),
            close=str(data.get("close") or ""),
            is_closed=as_bool(data.get("is_closed", False)),
        )


def _optional_str(row: dict, key: str) -> Optional[str]:
    value = row.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _optional_int(row: dict, key: str) -> Optional[int]:
    value = row.get(key)
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class Appointment:
    """A booked appointment as stored by the appointment provider.

    ``scheduled_start`` and ``scheduled_end`` are timezone-aware datetimes
    expressed in the storage (site) timezone.
    """

    id: int
    scheduled_start: datetime
    scheduled_end: datetime
    status: str = "pending"
    employee_id: Optional[int] = None
    employee_name: Optional[str] = None
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    service_background_color: Optional[str] = None
    service_text_color: Optional[str] = None
    customer_id: Optional[int] = None
    customer_account_name: Optional[str] = None
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None
    is_recurring: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any], storage_timezone: tzinfo) -> "Appointment":
        """Build an appointment from a flat storage row.

        Args:
            row: Mapping with ``booking_id``, ``scheduled_start``,
                ``scheduled_end``, ``status`` and optional service, employee
                and customer columns.
            storage_timezone: pytz timezone naive datetimes are stored in.

        Returns:
            The appointment with aware start/end datetimes.
        """
        background = _optional_str(row, "service_background_color")
        if background is None:
            # Older rows only carry a single service colour.
            background = _optional_str(row, "service_color")

        return cls(
            id=int(row["booking_id"]),
            scheduled_start=_parse_storage_datetime(row["scheduled_start"], storage_timezone),
            scheduled_end=_parse_storage_datetime(row["scheduled_end"], storage_timezone),
            status=str(row.get("status") or "pending"),
            employee_id=_optional_int(row, "employee_id"),
            employee_name=_optional_str(row, "employee_name"),
            service_id=_optional_int(row, "service_id"),
            service_name=_optional_str(row, "service_name"),
            service_background_color=background,
            service_text_color=_optional_str(row, "service_text_color"),
            customer_id=_optional_int(row, "customer_id"),
            customer_account_name=_optional_str(row, "customer_account_name"),
            customer_first_name=_optional_str(row, "customer_first_name"),
            customer_last_name=_optional_str(row, "customer_last_name"),
            customer_email=_optional_str(row, "customer_email"),
            customer_phone=_optional_str(row, "customer_phone"),
            payment_status=_optional_str(row, "payment_status"),
            notes=_optional_str(row, "notes"),
            is_recurring=bool(row.get("is_recurring")),
        )


def _parse_storage_datetime(value: Any, storage_timezone: tzinfo) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.strptime(str(value), STORAGE_DATETIME_FORMAT)
    if parsed.tzinfo is None:
        if hasattr(storage_timezone, "localize"):
            parsed = storage_timezone.localize(parsed)
        else:
            parsed = parsed.replace(tzinfo=storage_timezone)
    return parsed


@dataclass
class DailySchedule:
    """Aggregated calendar view of one location for one day.

    All datetimes are expressed in ``timezone`` (the display timezone).

    Attributes:
        location: The resolved location.
        date: The requested date, normalized to the display timezone.
        timezone: Display timezone of the location.
        employees: Employees assigned to the location.
        slots: "HH:MM" slot labels from open to close.
        slot_length: Minutes per slot.
        appointments: Appointments starting on the requested day.
        window_appointments: All appointments fetched for the lookup window.
        window_start: Start of the lookup window.
        window_end: End of the lookup window.
        day_start: Midnight of the requested day.
        day_end: 23:59:59 of the requested day.
        is_closed: Whether business hours mark the day closed.
        open: Opening instant.
        close: Closing instant (always after ``open``).
    """

    location: Location
    date: datetime
    timezone: tzinfo
    employees: list[Employee]
    slots: list[str]
    slot_length: int
    appointments: list[Appointment]
    window_appointments: list[Appointment]
    window_start: datetime
    window_end: datetime
    day_start: datetime
    day_end: datetime
    is_closed: bool
    open: datetime
    close: datetime

    @property
    def schedule_date(self) -> date:
        """Calendar date of the schedule in the display timezone."""
        return self.date.date()

    def get_employee_ids(self) -> list[int]:
        """Get ids of the employees assigned to the location."""
        return [employee.id for employee in self.employees]

    def get_appointments_for_employee(self, employee_id: int) -> list[Appointment]:
        """Get the day's appointments for one employee, ordered by start."""
        return sorted(
            (a for a in self.appointments if a.employee_id == employee_id),
            key=lambda a: a.scheduled_start,
        )


@dataclass
class CalendarEvent:
    """Display-ready event for the resource calendar widget."""

    id: int
    resource_id: int
    title: str
    start: str
    end: str
    color: str
    text_color: str
    customer: str
    time_range: str
    service: Optional[str]
    service_id: Optional[int]
    employee: Optional[str]
    status: str
    customer_email: Optional[str]
    customer_phone: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the EventCalendar payload shape."""
        return {
            "id": self.id,
            "resourceId": self.resource_id,
            "title": self.title,
            "start": self.start,
            "end": self.end,
            "color": self.color,
            "textColor": self.text_color,
            "extendedProps": {
                "customer": self.customer,
                "timeRange": self.time_range,
                "service": self.service,
                "serviceId": self.service_id,
                "employee": self.employee,
                "status": self.status,
                "customerEmail": self.customer_email,
                "customerPhone": self.customer_phone,
                "appointmentId": self.id,
            },
        }


@dataclass(frozen=True)
class ViewWindow:
    """Visible time range of a day view ("HH:MM:SS" strings)."""

    slot_min_time: str
    slot_max_time: str
    scroll_time: str

    def to_dict(self) -> dict[str, str]:
        return {
            "slotMinTime": self.slot_min_time,
            "slotMaxTime": self.slot_max_time,
            "scrollTime": self.scroll_time,
        }
