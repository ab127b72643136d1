"""Tests for daily schedule aggregation."""

import logging
from datetime import date, datetime, time, timedelta

import pytest
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
from bookingcal.scheduling.calendar_service import CalendarService

BUDAPEST = pytz.timezone("Europe/Budapest")
NEW_YORK = pytz.timezone("America/New_York")


def budapest(*args) -> datetime:
    return BUDAPEST.localize(datetime(*args))


class FakeLocations(LocationProvider):
    """Returns a fixed result and records requested ids."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def get_location(self, location_id):
        self.calls.append(location_id)
        return self.result


class FakeBusinessHours(BusinessHoursProvider):
    def __init__(self, result):
        self.result = result
        self.calls = []

    def get_location_hours(self, location_id):
        self.calls.append(location_id)
        return self.result


class FakeEmployees(EmployeeProvider):
    def __init__(self, roster):
        self.roster = roster
        self.calls = 0

    def list_employees(self):
        self.calls += 1
        return list(self.roster)


class FakeAppointments(AppointmentProvider):
    """Returns every stored appointment so the service does the filtering."""

    def __init__(self, appointments):
        self.appointments = appointments
        self.calls = []

    def get_appointments_for_employees(self, employee_ids, start, end):
        self.calls.append((list(employee_ids), start, end))
        return list(self.appointments)


def make_appointment(booking_id, start, minutes=30, employee_id=11, **kwargs):
    return Appointment(
        id=booking_id,
        scheduled_start=start,
        scheduled_end=start + timedelta(minutes=minutes),
        status=kwargs.pop("status", "confirmed"),
        employee_id=employee_id,
        **kwargs,
    )


class TestCalendarService:
    """Tests for CalendarService.get_daily_schedule."""

    @pytest.fixture
    def location(self):
        """Create the HQ location in Budapest."""
        return Location(id=5, name="HQ", timezone="Europe/Budapest")

    @pytest.fixture
    def roster(self):
        """One employee at HQ and one elsewhere."""
        return [
            Employee(id=11, name="Anna", location_ids=frozenset({5})),
            Employee(id=99, name="Zoltan", location_ids=frozenset({99})),
        ]

    @pytest.fixture
    def hours(self):
        """Thursday 09:00-11:00, every other day unset."""
        return {4: DayHours(open="09:00", close="11:00", is_closed=False)}

    @pytest.fixture
    def booking(self):
        """Booking 42 on Thursday 2025-05-01 09:00-09:30."""
        return make_appointment(
            42,
            budapest(2025, 5, 1, 9, 0),
            service_name="Haircut",
            customer_first_name="Alex",
        )

    @pytest.fixture
    def providers(self, location, roster, hours, booking):
        return {
            "locations": FakeLocations(location),
            "employees": FakeEmployees(roster),
            "business_hours": FakeBusinessHours(hours),
            "appointments": FakeAppointments([booking]),
        }

    @pytest.fixture
    def service(self, providers):
        """Create a service with the site in Budapest and 30 minute slots."""
        return CalendarService(
            settings=GeneralSettings(time_slot_length=30),
            site_timezone="Europe/Budapest",
            **providers,
        )

    def test_builds_schedule_for_location_day(self, service, location):
        """Location, hours, slots, employees and appointments are combined."""
        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert not isinstance(schedule, ServiceError)
        assert schedule.location == location
        assert schedule.timezone.zone == "Europe/Budapest"
        assert schedule.schedule_date == date(2025, 5, 1)
        assert schedule.slots == ["09:00", "09:30", "10:00", "10:30"]
        assert schedule.slot_length == 30
        assert schedule.get_employee_ids() == [11]
        assert [a.id for a in schedule.appointments] == [42]
        assert [a.id for a in schedule.window_appointments] == [42]
        assert schedule.is_closed is False
        assert schedule.open == budapest(2025, 5, 1, 9, 0)
        assert schedule.close == budapest(2025, 5, 1, 11, 0)

    def test_queries_assigned_employees_over_lookup_window(self, service, providers):
        """Appointments are fetched for assigned employees, day +/- 7 days."""
        service.get_daily_schedule(5, date(2025, 5, 1))

        calls = providers["appointments"].calls
        assert len(calls) == 1
        employee_ids, start, end = calls[0]
        assert employee_ids == [11]
        assert start == budapest(2025, 4, 24, 0, 0)
        assert end == budapest(2025, 5, 8, 23, 59, 59)
        assert start.tzinfo.zone == "Europe/Budapest"

    def test_window_and_day_bounds(self, service):
        """Day bounds are midnight to 23:59:59, window is seven days each side."""
        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.day_start == budapest(2025, 5, 1, 0, 0)
        assert schedule.day_end == budapest(2025, 5, 1, 23, 59, 59)
        assert schedule.window_start == budapest(2025, 4, 24, 0, 0)
        assert schedule.window_end == budapest(2025, 5, 8, 23, 59, 59)

    def test_window_is_wall_clock_across_dst(self, service):
        """Window bounds stay at local midnight across a DST change."""
        # Budapest switches to summer time on 2025-03-30
        schedule = service.get_daily_schedule(5, date(2025, 4, 2))

        assert schedule.window_start.time() == time(0, 0)
        assert schedule.window_start.utcoffset() == timedelta(hours=1)
        assert schedule.day_start.utcoffset() == timedelta(hours=2)

    def test_missing_location_returns_provider_error(self, providers):
        """The location error is returned as-is and nothing else is queried."""
        error = ServiceError(code="missing", message="No such location")
        providers["locations"] = FakeLocations(error)
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        result = service.get_daily_schedule(99, date(2025, 5, 1))

        assert result is error
        assert result.code == "missing"
        assert providers["employees"].calls == 0
        assert providers["business_hours"].calls == []
        assert providers["appointments"].calls == []

    def test_business_hours_error_is_propagated(self, providers):
        """A business hours error is returned unchanged."""
        error = ServiceError(code="hours_unavailable")
        providers["business_hours"] = FakeBusinessHours(error)
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        assert service.get_daily_schedule(5, date(2025, 5, 1)) is error
        assert providers["appointments"].calls == []

    def test_location_error_is_logged(self, providers, caplog):
        """Provider errors are logged before being returned."""
        providers["locations"] = FakeLocations(ServiceError(code="missing"))
        service = CalendarService(settings=GeneralSettings(), **providers)

        with caplog.at_level(logging.ERROR):
            service.get_daily_schedule(5, date(2025, 5, 1))

        assert "missing" in caplog.text

    def test_non_positive_location_has_no_employees(self, providers):
        """Location ids <= 0 skip the roster and the appointment query."""
        providers["locations"] = FakeLocations(Location(id=0, name="Draft"))
        service = CalendarService(settings=GeneralSettings(), **providers)

        schedule = service.get_daily_schedule(0, date(2025, 5, 1))

        assert schedule.employees == []
        assert schedule.appointments == []
        assert schedule.window_appointments == []
        assert providers["employees"].calls == 0
        assert providers["appointments"].calls == []

    def test_no_assigned_employees_skips_appointment_query(self, providers):
        """Appointments are only fetched when the location has employees."""
        providers["employees"] = FakeEmployees(
            [Employee(id=99, name="Zoltan", location_ids=frozenset({99}))]
        )
        service = CalendarService(settings=GeneralSettings(), **providers)

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.employees == []
        assert schedule.appointments == []
        assert providers["appointments"].calls == []

    def test_invalid_location_timezone_falls_back_to_site(self, providers, caplog):
        """An unknown zone name logs a warning and uses the site timezone."""
        providers["locations"] = FakeLocations(
            Location(id=5, name="HQ", timezone="Mars/Olympus_Mons")
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        with caplog.at_level(logging.WARNING):
            schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.timezone.zone == "Europe/Budapest"
        assert "Mars/Olympus_Mons" in caplog.text

    def test_location_without_timezone_uses_site(self, providers):
        """Locations without a zone are shown in the site timezone."""
        providers["locations"] = FakeLocations(Location(id=5, name="HQ"))
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.timezone.zone == "Europe/Budapest"

    def test_invalid_site_timezone_falls_back_to_utc(self, providers):
        """An invalid site zone name resolves to UTC."""
        providers["locations"] = FakeLocations(Location(id=5, name="HQ"))
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Not/A_Zone",
            **providers,
        )

        assert service.site_timezone == pytz.utc

    def test_close_not_after_open_gets_eight_hours(self, providers):
        """When close <= open, close is pushed to open + 8 hours."""
        providers["business_hours"] = FakeBusinessHours(
            {4: DayHours(open="18:00", close="09:00")}
        )
        service = CalendarService(
            settings=GeneralSettings(time_slot_length=60),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.open == budapest(2025, 5, 1, 18, 0)
        assert schedule.close == budapest(2025, 5, 2, 2, 0)
        assert schedule.close - schedule.open == timedelta(hours=8)
        assert schedule.slots[0] == "18:00"
        assert schedule.slots[-1] == "01:00"
        assert len(schedule.slots) == 8

    def test_equal_open_and_close_gets_eight_hours(self, providers):
        providers["business_hours"] = FakeBusinessHours(
            {4: DayHours(open="10:00", close="10:00")}
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.close == budapest(2025, 5, 1, 18, 0)

    def test_unparseable_hours_use_defaults(self, providers, caplog):
        """Malformed times fall back to 08:00-18:00 and log a warning."""
        providers["business_hours"] = FakeBusinessHours(
            {4: DayHours(open="nine", close="11:00")}
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        with caplog.at_level(logging.WARNING):
            schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.open == budapest(2025, 5, 1, 8, 0)
        assert schedule.close == budapest(2025, 5, 1, 18, 0)
        assert "nine" in caplog.text

    def test_unset_weekday_is_closed_with_default_hours(self, service):
        """A weekday with no entry is closed and spans 08:00-18:00."""
        # 2025-05-02 is a Friday, only Thursday is configured
        schedule = service.get_daily_schedule(5, date(2025, 5, 2))

        assert schedule.is_closed is True
        assert schedule.open == budapest(2025, 5, 2, 8, 0)
        assert schedule.close == budapest(2025, 5, 2, 18, 0)
        assert len(schedule.slots) == 20

    def test_closed_flag_is_reported(self, providers):
        providers["business_hours"] = FakeBusinessHours(
            {4: DayHours(open="09:00", close="17:00", is_closed=True)}
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        assert service.get_daily_schedule(5, date(2025, 5, 1)).is_closed is True

    def test_hours_accept_plain_mappings(self, providers):
        """Hours given as {open, close, is_closed} dictionaries are read."""
        providers["business_hours"] = FakeBusinessHours(
            {4: {"open": "10:00", "close": "12:00", "is_closed": False}}
        )
        service = CalendarService(
            settings=GeneralSettings(time_slot_length=60),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.slots == ["10:00", "11:00"]

    def test_malformed_hours_entry_is_closed(self, providers, caplog):
        providers["business_hours"] = FakeBusinessHours({4: "09:00-17:00"})
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        with caplog.at_level(logging.WARNING):
            schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.is_closed is True
        assert "malformed" in caplog.text

    def test_day_filter_is_inclusive(self, providers):
        """Appointments at 00:00:00 and 23:59:59 belong to the day."""
        providers["appointments"] = FakeAppointments(
            [
                make_appointment(1, budapest(2025, 4, 30, 23, 59, 59)),
                make_appointment(2, budapest(2025, 5, 1, 0, 0, 0)),
                make_appointment(3, budapest(2025, 5, 1, 12, 0)),
                make_appointment(4, budapest(2025, 5, 1, 23, 59, 59)),
                make_appointment(5, budapest(2025, 5, 2, 0, 0, 0)),
            ]
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert [a.id for a in schedule.appointments] == [2, 3, 4]
        assert [a.id for a in schedule.window_appointments] == [1, 2, 3, 4, 5]

    def test_day_filter_compares_instants(self, providers):
        """Appointments stored in another zone are compared by instant."""
        providers["appointments"] = FakeAppointments(
            [
                # 00:30 in Budapest on May 1st
                make_appointment(1, pytz.utc.localize(datetime(2025, 4, 30, 22, 30))),
                # 23:30 in Budapest on April 30th
                make_appointment(2, pytz.utc.localize(datetime(2025, 4, 30, 21, 30))),
            ]
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert [a.id for a in schedule.appointments] == [1]

    def test_malformed_entries_are_skipped(self, providers, booking):
        """Entries without a start datetime are dropped from the day."""
        providers["appointments"] = FakeAppointments([None, {"id": 1}, booking])
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.appointments == [booking]

    def test_day_appointments_are_subset_of_window(self, providers):
        providers["appointments"] = FakeAppointments(
            [
                make_appointment(i, budapest(2025, 4, 26, 9, 0) + timedelta(days=i))
                for i in range(10)
            ]
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        window_ids = {a.id for a in schedule.window_appointments}
        assert [a.id for a in schedule.appointments] == [5]
        assert all(a.id in window_ids for a in schedule.appointments)

    def test_naive_datetime_is_read_in_site_timezone(self, service):
        schedule = service.get_daily_schedule(5, datetime(2025, 5, 1, 15, 0))

        assert schedule.schedule_date == date(2025, 5, 1)
        assert schedule.date == budapest(2025, 5, 1, 15, 0)

    def test_window_is_queried_in_site_timezone(self, providers):
        """A location in another zone still queries storage in site time."""
        providers["locations"] = FakeLocations(
            Location(id=5, name="NYC", timezone="America/New_York")
        )
        service = CalendarService(
            settings=GeneralSettings(),
            site_timezone="UTC",
            **providers,
        )

        schedule = service.get_daily_schedule(5, NEW_YORK.localize(datetime(2025, 5, 1, 12, 0)))

        assert schedule.schedule_date == date(2025, 5, 1)
        _, start, end = providers["appointments"].calls[0]
        assert start.tzinfo == pytz.utc
        assert start == NEW_YORK.localize(datetime(2025, 4, 24, 0, 0))
        assert end == NEW_YORK.localize(datetime(2025, 5, 8, 23, 59, 59))

    def test_plain_date_west_of_site_keeps_day(self, providers):
        """A plain date is the location's calendar day, not the site's."""
        providers["locations"] = FakeLocations(
            Location(id=5, name="NYC", timezone="America/New_York")
        )
        service = CalendarService(
            settings=GeneralSettings(time_slot_length=30),
            site_timezone="UTC",
            **providers,
        )

        schedule = service.get_daily_schedule(5, date(2025, 5, 1))

        assert schedule.schedule_date == date(2025, 5, 1)
        assert schedule.open == NEW_YORK.localize(datetime(2025, 5, 1, 9, 0))
        assert schedule.close == NEW_YORK.localize(datetime(2025, 5, 1, 11, 0))
        assert schedule.day_start == NEW_YORK.localize(datetime(2025, 5, 1, 0, 0))

    def test_each_call_queries_providers_again(self, service, providers):
        """Nothing is cached between calls."""
        service.get_daily_schedule(5, date(2025, 5, 1))
        service.get_daily_schedule(5, date(2025, 5, 1))

        assert providers["locations"].calls == [5, 5]
        assert providers["employees"].calls == 2
        assert len(providers["appointments"].calls) == 2

    def test_info_logging(self, service, caplog):
        with caplog.at_level(logging.INFO):
            service.get_daily_schedule(5, date(2025, 5, 1))

        assert "Building daily schedule for location 5 (HQ)" in caplog.text
        assert "1 of 2 employees assigned" in caplog.text

    def test_injected_logger_is_used(self, providers, caplog):
        logger = logging.getLogger("tests.calendar")
        service = CalendarService(settings=GeneralSettings(), logger=logger, **providers)

        with caplog.at_level(logging.INFO, logger="tests.calendar"):
            service.get_daily_schedule(5, date(2025, 5, 1))

        assert any(record.name == "tests.calendar" for record in caplog.records)


class TestLocationEmployees:
    """Tests for CalendarService.get_location_employees."""

    @pytest.fixture
    def employees(self):
        return FakeEmployees(
            [
                Employee(id=1, name="A", location_ids=frozenset({5, 6})),
                Employee(id=2, name="B", location_ids=frozenset({6})),
                Employee(id=3, name="C", location_ids=frozenset({5})),
            ]
        )

    @pytest.fixture
    def service(self, employees):
        return CalendarService(
            appointments=FakeAppointments([]),
            employees=employees,
            business_hours=FakeBusinessHours({}),
            locations=FakeLocations(None),
            settings=GeneralSettings(),
        )

    def test_filters_by_assignment(self, service):
        """Only employees serving the location are returned, in roster order."""
        assert [e.id for e in service.get_location_employees(5)] == [1, 3]
        assert [e.id for e in service.get_location_employees(6)] == [1, 2]

    def test_unknown_location_has_no_employees(self, service):
        assert service.get_location_employees(7) == []

    @pytest.mark.parametrize("location_id", [0, -1])
    def test_non_positive_id_skips_roster(self, service, employees, location_id):
        assert service.get_location_employees(location_id) == []
        assert employees.calls == 0


class TestViewWindow:
    """Tests for CalendarService.build_view_window."""

    @pytest.fixture
    def service(self):
        return CalendarService(
            appointments=FakeAppointments([]),
            employees=FakeEmployees([]),
            business_hours=FakeBusinessHours({}),
            locations=FakeLocations(None),
            settings=GeneralSettings(),
            site_timezone="Europe/Budapest",
        )

    def test_pads_business_hours(self, service):
        """Two hours are shown before opening and after closing."""
        window = service.build_view_window(
            budapest(2025, 5, 1, 9, 0), budapest(2025, 5, 1, 17, 0)
        )

        assert window.slot_min_time == "07:00:00"
        assert window.slot_max_time == "19:00:00"
        assert window.scroll_time == "09:00:00"

    def test_clamps_to_start_of_day(self, service):
        window = service.build_view_window(
            budapest(2025, 5, 1, 1, 0), budapest(2025, 5, 1, 2, 0)
        )

        assert window.slot_min_time == "00:00:00"
        assert window.slot_max_time == "04:00:00"
        assert window.scroll_time == "01:00:00"

    def test_clamps_to_end_of_day(self, service):
        """A window reaching midnight ends at 24:00:00."""
        window = service.build_view_window(
            budapest(2025, 5, 1, 20, 0), budapest(2025, 5, 1, 23, 0)
        )

        assert window.slot_min_time == "18:00:00"
        assert window.slot_max_time == "24:00:00"

    def test_overnight_hours_clamp_to_end_of_day(self, service):
        window = service.build_view_window(
            budapest(2025, 5, 1, 18, 0), budapest(2025, 5, 2, 2, 0)
        )

        assert window.slot_max_time == "24:00:00"

    def test_to_dict(self, service):
        window = service.build_view_window(
            budapest(2025, 5, 1, 9, 0), budapest(2025, 5, 1, 17, 0)
        )

        assert window.to_dict() == {
            "slotMinTime": "07:00:00",
            "slotMaxTime": "19:00:00",
            "scrollTime": "09:00:00",
        }


class TestCalendarPayload:
    """Tests for CalendarService.get_calendar_payload."""

    @pytest.fixture
    def service(self):
        return CalendarService(
            appointments=FakeAppointments(
                [
                    make_appointment(
                        42,
                        budapest(2025, 5, 1, 9, 0),
                        service_name="Haircut",
                        service_background_color="3366ff",
                        customer_first_name="Alex",
                        customer_last_name="Smith",
                    ),
                    make_appointment(43, budapest(2025, 5, 1, 10, 0), employee_id=None),
                ]
            ),
            employees=FakeEmployees([Employee(id=11, name="Anna", location_ids=frozenset({5}))]),
            business_hours=FakeBusinessHours({4: DayHours(open="09:00", close="11:00")}),
            locations=FakeLocations(Location(id=5, name="HQ", timezone="Europe/Budapest")),
            settings=GeneralSettings(time_slot_length=30),
            site_timezone="Europe/Budapest",
        )

    def test_payload_shape(self, service):
        """The payload carries resources, events, slots and view window."""
        payload = service.get_calendar_payload(5, date(2025, 5, 1))

        assert payload["date"] == "2025-05-01"
        assert payload["timezone"] == "Europe/Budapest"
        assert payload["location"] == {"id": 5, "name": "HQ"}
        assert payload["is_closed"] is False
        assert payload["open"] == "09:00"
        assert payload["close"] == "11:00"
        assert payload["slot_length"] == 30
        assert payload["slotDuration"] == "00:30:00"
        assert payload["slots"] == ["09:00", "09:30", "10:00", "10:30"]
        assert payload["resources"] == [{"id": 11, "title": "Anna"}]
        assert payload["slotMinTime"] == "07:00:00"
        assert payload["slotMaxTime"] == "13:00:00"
        assert payload["scrollTime"] == "09:00:00"

    def test_payload_events(self, service):
        """Unassigned appointments are not turned into events."""
        payload = service.get_calendar_payload(5, date(2025, 5, 1))

        assert len(payload["events"]) == 1
        event = payload["events"][0]
        assert event["id"] == 42
        assert event["resourceId"] == 11
        assert event["title"] == "Haircut"
        assert event["start"] == "2025-05-01 09:00:00"
        assert event["end"] == "2025-05-01 09:30:00"
        assert event["color"] == "#3366ff"
        assert event["extendedProps"]["customer"] == "Alex Smith"
        assert event["extendedProps"]["timeRange"] == "09:00–09:30"

    def test_payload_propagates_errors(self):
        error = ServiceError(code="missing")
        service = CalendarService(
            appointments=FakeAppointments([]),
            employees=FakeEmployees([]),
            business_hours=FakeBusinessHours({}),
            locations=FakeLocations(error),
            settings=GeneralSettings(),
        )

        assert service.get_calendar_payload(5, date(2025, 5, 1)) is error
