"""Daily calendar aggregation.

This module provides the CalendarService that combines a location's
timezone and business hours, the employees assigned to it and the
appointments around the requested day into one DailySchedule.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional, Union

from bookingcal.domain.models import (
    Appointment,
    DailySchedule,
    DayHours,
    Employee,
    Location,
    ServiceError,
    ViewWindow,
)
from bookingcal.domain.providers import (
    AppointmentProvider,
    BusinessHoursProvider,
    EmployeeProvider,
    LocationProvider,
    SettingsProvider,
)
from bookingcal.scheduling.events import build_events
from bookingcal.scheduling.timezones import (
    at_time,
    ensure_aware,
    normalize_date,
    parse_time_of_day,
    resolve_timezone,
    shift,
    timezone_of,
    to_timezone,
)

DEFAULT_OPEN = time(8, 0)
DEFAULT_CLOSE = time(18, 0)
FALLBACK_DAY_LENGTH = timedelta(hours=8)
END_OF_DAY = time(23, 59, 59)

module_logger = logging.getLogger(__name__)


class CalendarService:
    """Builds per-day calendar views for a location.

    The service is stateless: every call queries its providers again and
    nothing is cached between calls.

    Example:
        >>> service = CalendarService(
        ...     appointments, employees, business_hours, locations, settings,
        ...     site_timezone="Europe/Budapest",
        ... )
        >>> schedule = service.get_daily_schedule(5, date(2025, 5, 1))
        >>> if isinstance(schedule, ServiceError):
        ...     print(schedule.code)
    """

    def __init__(
        self,
        appointments: AppointmentProvider,
        employees: EmployeeProvider,
        business_hours: BusinessHoursProvider,
        locations: LocationProvider,
        settings: SettingsProvider,
        site_timezone: Union[str, tzinfo] = "UTC",
        logger: Optional[logging.Logger] = None,
        lookup_days: int = 7,
        view_padding_hours: int = 2,
    ):
        """Initialize the service with its providers.

        Args:
            appointments: Appointment queries.
            employees: Employee roster.
            business_hours: Per-location business hours.
            locations: Location lookups.
            settings: Slot length and slot generation.
            site_timezone: Timezone appointments are stored and queried in.
                Also the display fallback for locations without a zone.
            logger: Logger for provider-boundary messages.
            lookup_days: Days fetched on each side of the requested day.
            view_padding_hours: Hours shown around business hours in
                day views.
        """
        self.appointments = appointments
        self.employees = employees
        self.business_hours = business_hours
        self.locations = locations
        self.settings = settings
        self.logger = logger or module_logger
        if isinstance(site_timezone, str):
            site_timezone = resolve_timezone(site_timezone, "UTC", self.logger)
        self.site_timezone = site_timezone
        self.lookup_days = lookup_days
        self.view_padding = timedelta(hours=view_padding_hours)

    def get_daily_schedule(
        self,
        location_id: int,
        day: Union[date, datetime],
    ) -> Union[DailySchedule, ServiceError]:
        """Build the schedule of a location for one calendar day.

        Args:
            location_id: Location to build the schedule for.
            day: Requested day. Plain dates are that calendar day in the
                location timezone. Naive datetimes are read in the site
                timezone.

        Returns:
            The DailySchedule, or the ServiceError returned by the location
            or business hours provider.
        """
        location = self.locations.get_location(location_id)
        if isinstance(location, ServiceError):
            self.logger.error(
                f"Location lookup failed for {location_id}: {location}"
            )
            return location
        self.logger.info(f"Building daily schedule for location {location.id} ({location.name})")

        tz = self.get_location_timezone(location)
        normalized = normalize_date(day, tz, self.site_timezone)
        local_day = normalized.date()

        employees = self.get_location_employees(location_id)

        hours = self.business_hours.get_location_hours(location_id)
        if isinstance(hours, ServiceError):
            self.logger.error(
                f"Business hours lookup failed for location {location_id}: {hours}"
            )
            return hours
        self.logger.info(f"Loaded business hours for location {location_id} on {local_day}")

        day_hours = self._select_day_hours(hours, local_day)
        open_at, close_at = self._resolve_open_close(tz, local_day, day_hours)
        slots = self.settings.get_slots_for_range(open_at, close_at)

        day_start = at_time(tz, local_day, time(0, 0))
        day_end = at_time(tz, local_day, END_OF_DAY)
        lookup = timedelta(days=self.lookup_days)
        window_start = at_time(tz, local_day - lookup, time(0, 0))
        window_end = at_time(tz, local_day + lookup, END_OF_DAY)

        window_appointments: list[Appointment] = []
        if employees:
            window_appointments = self._fetch_appointments(
                [employee.id for employee in employees], window_start, window_end
            )

        day_appointments = self._filter_day(window_appointments, day_start, day_end)

        return DailySchedule(
            location=location,
            date=normalized,
            timezone=tz,
            employees=employees,
            slots=slots,
            slot_length=self.settings.get_time_slot_length(),
            appointments=day_appointments,
            window_appointments=window_appointments,
            window_start=window_start,
            window_end=window_end,
            day_start=day_start,
            day_end=day_end,
            is_closed=bool(day_hours.is_closed),
            open=open_at,
            close=close_at,
        )

    def get_location_timezone(self, location: Location) -> tzinfo:
        """Get the display timezone of a location.

        Locations without a zone use the site timezone. Invalid zone names
        are logged and also fall back to the site timezone.
        """
        return resolve_timezone(location.timezone, self.site_timezone, self.logger)

    def get_location_employees(self, location_id: int) -> list[Employee]:
        """Get the employees assigned to a location."""
        if location_id <= 0:
            return []

        roster = self.employees.list_employees()
        assigned = [e for e in roster if e.serves_location(location_id)]
        self.logger.info(
            f"Location {location_id}: {len(assigned)} of {len(roster)} employees assigned"
        )
        return assigned

    def build_view_window(self, open_at: datetime, close_at: datetime) -> ViewWindow:
        """Get the visible time range of a day view.

        Business hours are padded on both sides and clamped to the calendar
        day of ``open_at``.

        Args:
            open_at: Opening instant.
            close_at: Closing instant.

        Returns:
            ViewWindow with "HH:MM:SS" strings. The upper bound reads
            "24:00:00" when clamped to the end of the day.
        """
        tz = timezone_of(open_at)
        local_day = open_at.date()
        midnight = at_time(tz, local_day, time(0, 0))
        next_midnight = at_time(tz, local_day + timedelta(days=1), time(0, 0))

        lower = max(shift(open_at, -self.view_padding), midnight)
        upper = min(shift(close_at.astimezone(tz), self.view_padding), next_midnight)

        return ViewWindow(
            slot_min_time=lower.strftime("%H:%M:%S"),
            slot_max_time="24:00:00" if upper >= next_midnight else upper.strftime("%H:%M:%S"),
            scroll_time=open_at.strftime("%H:%M:%S"),
        )

    def get_calendar_payload(
        self,
        location_id: int,
        day: Union[date, datetime],
        placeholder_title: str = "Appointment",
    ) -> Union[dict[str, Any], ServiceError]:
        """Build the payload consumed by the resource day-view widget.

        Returns:
            Dictionary with resources, events, slots and view window, or the
            ServiceError propagated from ``get_daily_schedule``.
        """
        schedule = self.get_daily_schedule(location_id, day)
        if isinstance(schedule, ServiceError):
            return schedule

        events = build_events(
            schedule.appointments,
            schedule.timezone,
            storage_timezone=self.site_timezone,
            placeholder_title=placeholder_title,
        )
        hours, minutes = divmod(schedule.slot_length, 60)

        payload = {
            "date": schedule.schedule_date.isoformat(),
            "timezone": str(schedule.timezone),
            "location": {"id": schedule.location.id, "name": schedule.location.name},
            "is_closed": schedule.is_closed,
            "open": schedule.open.strftime("%H:%M"),
            "close": schedule.close.strftime("%H:%M"),
            "slot_length": schedule.slot_length,
            "slotDuration": f"{hours:02d}:{minutes:02d}:00",
            "slots": list(schedule.slots),
            "resources": [{"id": e.id, "title": e.name} for e in schedule.employees],
            "events": [event.to_dict() for event in events],
        }
        payload.update(self.build_view_window(schedule.open, schedule.close).to_dict())
        return payload

    def _select_day_hours(self, hours: Mapping, local_day: date) -> DayHours:
        """Pick the hours of the day's ISO weekday, defaulting to closed."""
        entry = hours.get(local_day.isoweekday())
        if isinstance(entry, DayHours):
            return entry
        if isinstance(entry, Mapping):
            return DayHours.from_mapping(entry)
        if entry is not None:
            self.logger.warning(
                f"Ignoring malformed business hours for {local_day}: {entry!r}"
            )
        return DayHours.closed()

    def _resolve_open_close(
        self,
        tz: tzinfo,
        local_day: date,
        day_hours: DayHours,
    ) -> tuple[datetime, datetime]:
        """Get opening and closing instants, applying the fallbacks."""
        open_time = parse_time_of_day(day_hours.open or "08:00")
        close_time = parse_time_of_day(day_hours.close or "18:00")

        if open_time is None or close_time is None:
            self.logger.warning(
                f"Unparseable business hours '{day_hours.open}'-'{day_hours.close}' "
                f"on {local_day}, using 08:00-18:00"
            )
            open_time, close_time = DEFAULT_OPEN, DEFAULT_CLOSE

        open_at = at_time(tz, local_day, open_time)
        close_at = at_time(tz, local_day, close_time)

        if close_at <= open_at:
            close_at = shift(open_at, FALLBACK_DAY_LENGTH)

        return open_at, close_at

    def _fetch_appointments(
        self,
        employee_ids: list[int],
        window_start: datetime,
        window_end: datetime,
    ) -> list[Appointment]:
        """Query appointments for the lookup window in storage time."""
        start = to_timezone(window_start, self.site_timezone)
        end = to_timezone(window_end, self.site_timezone)

        appointments = list(
            self.appointments.get_appointments_for_employees(employee_ids, start, end)
        )
        self.logger.info(
            f"Fetched {len(appointments)} appointments for {len(employee_ids)} employees "
            f"between {start.isoformat()} and {end.isoformat()}"
        )
        return appointments

    def _filter_day(
        self,
        appointments: list[Appointment],
        day_start: datetime,
        day_end: datetime,
    ) -> list[Appointment]:
        """Keep appointments starting within [day_start, day_end]."""
        lower = day_start.timestamp()
        upper = day_end.timestamp()
        tz = day_start.tzinfo

        selected = []
        for appointment in appointments:
            start = getattr(appointment, "scheduled_start", None)
            if not isinstance(start, datetime):
                continue
            start = to_timezone(ensure_aware(start, self.site_timezone), tz)
            if lower <= start.timestamp() <= upper:
                selected.append(appointment)
        return selected
