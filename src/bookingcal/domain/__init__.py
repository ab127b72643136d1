"""Domain models, provider interfaces and settings for the booking calendar."""

from bookingcal.domain.models import (
    Appointment,
    CalendarEvent,
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
from bookingcal.domain.settings import ALLOWED_SLOT_LENGTHS, GeneralSettings

__all__ = [
    # Models
    "Appointment",
    "CalendarEvent",
    "DailySchedule",
    "DayHours",
    "Employee",
    "Location",
    "ServiceError",
    "ViewWindow",
    # Providers
    "AppointmentProvider",
    "BusinessHoursProvider",
    "EmployeeProvider",
    "LocationProvider",
    "SettingsProvider",
    # Settings
    "ALLOWED_SLOT_LENGTHS",
    "GeneralSettings",
]
