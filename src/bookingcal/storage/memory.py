"""In-memory providers and JSON fixture loading.

These back the command-line tool and make it easy to try the calendar
engine without a database. A fixture document looks like::

    {
      "settings": {"time_slot_length": 30, "site_timezone": "Europe/Budapest"},
      "locations": [{"id": 5, "name": "HQ", "timezone": "Europe/Budapest"}],
      "employees": [{"id": 11, "name": "Anna", "location_ids": [5]}],
      "business_hours": {"5": {"4": {"open": "09:00", "close": "17:00"}}},
      "appointments": [{"booking_id": 42, "employee_id": 11,
                        "scheduled_start": "2025-05-01 09:00:00",
                        "scheduled_end": "2025-05-01 09:30:00",
                        "status": "confirmed"}]
    }
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any, Union

import pytz

from bookingcal.domain.models import (
    Appointment,
    DayHours,
    Employee,
    Location,
    ServiceError,
)
from bookingcal.domain.providers import (
    AppointmentProvider,
    BusinessHoursProvider,
    EmployeeProvider,
    LocationProvider,
)
from bookingcal.domain.settings import GeneralSettings
from bookingcal.scheduling.timezones import resolve_timezone

WEEKDAYS = range(1, 8)


def empty_week() -> dict[int, DayHours]:
    """Get a week with every day closed."""
    return {day: DayHours.closed() for day in WEEKDAYS}


class InMemoryLocationProvider(LocationProvider):
    """Locations kept in a dictionary. Deleted locations are not found."""

    def __init__(self, locations: list[Location]):
        self._locations = {location.id: location for location in locations}

    def get_location(self, location_id: int) -> Union[Location, ServiceError]:
        location = self._locations.get(location_id)
        if location is None or location.is_deleted:
            return ServiceError(
                code="location_not_found",
                message=f"Location {location_id} not found.",
                data={"status": 404},
            )
        return location

    def list_locations(self) -> list[Location]:
        return [loc for loc in self._locations.values() if not loc.is_deleted]


class InMemoryBusinessHoursProvider(BusinessHoursProvider):
    """Business hours keyed by location id, then ISO weekday.

    Locations without stored hours get the all-closed week.
    """

    def __init__(self, hours: dict[int, dict[int, DayHours]]):
        self._hours = hours

    def get_location_hours(
        self, location_id: int
    ) -> Union[dict[int, DayHours], ServiceError]:
        stored = self._hours.get(location_id)
        if stored is None:
            return empty_week()
        week = empty_week()
        week.update(stored)
        return week


class InMemoryEmployeeProvider(EmployeeProvider):
    def __init__(self, employees: list[Employee]):
        self._employees = list(employees)

    def list_employees(self) -> list[Employee]:
        return list(self._employees)


class InMemoryAppointmentProvider(AppointmentProvider):
    """Appointments filtered by employee and contained in the window."""

    def __init__(self, appointments: list[Appointment]):
        self._appointments = list(appointments)

    def get_appointments_for_employees(
        self,
        employee_ids: list[int],
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        wanted = set(employee_ids)
        matches = [
            a
            for a in self._appointments
            if a.employee_id in wanted
            and a.scheduled_start >= start
            and a.scheduled_end <= end
        ]
        return sorted(matches, key=lambda a: a.scheduled_start)


@dataclass
class Fixture:
    """Providers and settings loaded from one fixture document."""

    settings: GeneralSettings
    locations: InMemoryLocationProvider
    employees: InMemoryEmployeeProvider
    business_hours: InMemoryBusinessHoursProvider
    appointments: InMemoryAppointmentProvider
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def site_timezone(self) -> tzinfo:
        return resolve_timezone(self.settings.site_timezone, pytz.utc)


def _require_list(document: dict, key: str) -> list:
    value = document.get(key, [])
    if not isinstance(value, list):
        raise ValueError(f"Fixture key '{key}' must be a list")
    return value


def _parse_location(data: dict) -> Location:
    return Location(
        id=int(data["id"]),
        name=str(data.get("name", "")),
        timezone=data.get("timezone") or None,
        address=data.get("address"),
        phone=data.get("phone"),
        is_deleted=bool(data.get("is_deleted", False)),
    )


def _parse_employee(data: dict) -> Employee:
    return Employee(
        id=int(data["id"]),
        name=str(data.get("name", "")),
        location_ids=frozenset(int(i) for i in data.get("location_ids", [])),
        visibility=str(data.get("visibility", "public")),
        is_deleted=bool(data.get("is_deleted", False)),
    )


def _parse_hours(raw: Any) -> dict[int, dict[int, DayHours]]:
    if not isinstance(raw, dict):
        raise ValueError("Fixture key 'business_hours' must be an object")

    hours: dict[int, dict[int, DayHours]] = {}
    for location_id, week in raw.items():
        if not isinstance(week, dict):
            raise ValueError(f"Business hours for location {location_id} must be an object")
        hours[int(location_id)] = {
            int(day): DayHours.from_mapping(entry)
            for day, entry in week.items()
            if isinstance(entry, dict)
        }
    return hours


def build_fixture(document: dict[str, Any]) -> Fixture:
    """Build providers from an already-parsed fixture document.

    Raises:
        ValueError: If the document is structurally invalid.
    """
    if not isinstance(document, dict):
        raise ValueError("Fixture must be a JSON object")

    settings = GeneralSettings.from_mapping(document.get("settings", {}))
    storage_tz = resolve_timezone(settings.site_timezone, pytz.utc)

    try:
        locations = [_parse_location(d) for d in _require_list(document, "locations")]
        employees = [_parse_employee(d) for d in _require_list(document, "employees")]
        appointments = [
            Appointment.from_row(row, storage_tz)
            for row in _require_list(document, "appointments")
        ]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid fixture record: {e}") from e

    return Fixture(
        settings=settings,
        locations=InMemoryLocationProvider(locations),
        employees=InMemoryEmployeeProvider(employees),
        business_hours=InMemoryBusinessHoursProvider(
            _parse_hours(document.get("business_hours", {}))
        ),
        appointments=InMemoryAppointmentProvider(appointments),
        raw=document,
    )


def load_fixture(path: Union[str, Path]) -> Fixture:
    """Load providers from a JSON fixture file.

    Raises:
        ValueError: If the file is not valid JSON or not a valid fixture.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Fixture {path} is not valid JSON: {e}") from e
    return build_fixture(document)
