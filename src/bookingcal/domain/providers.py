"""Provider interfaces consumed by the calendar engine.

The calendar engine never talks to storage directly. Each collaborator is
described by a small abstract base class so it can be backed by a database,
an in-memory fixture, or a test double.

Lookups that can fail return a ``ServiceError`` instead of raising, and the
engine passes that value straight back to its caller.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Union

from bookingcal.domain.models import (
    Appointment,
    DayHours,
    Employee,
    Location,
    ServiceError,
)


class LocationProvider(ABC):
    """Abstract base class for location lookups."""

    @abstractmethod
    def get_location(self, location_id: int) -> Union[Location, ServiceError]:
        """Get a location by id.

        Returns:
            The location, or a ServiceError when it does not exist.
        """
        pass


class BusinessHoursProvider(ABC):
    """Abstract base class for per-location business hours."""

    @abstractmethod
    def get_location_hours(
        self, location_id: int
    ) -> Union[dict[int, DayHours], ServiceError]:
        """Get business hours keyed by ISO weekday (1=Monday..7=Sunday)."""
        pass


class EmployeeProvider(ABC):
    """Abstract base class for the employee roster."""

    @abstractmethod
    def list_employees(self) -> list[Employee]:
        """Get the full employee roster."""
        pass


class AppointmentProvider(ABC):
    """Abstract base class for appointment queries."""

    @abstractmethod
    def get_appointments_for_employees(
        self,
        employee_ids: list[int],
        start: datetime,
        end: datetime,
    ) -> list[Appointment]:
        """Get appointments of the given employees within a time window.

        Args:
            employee_ids: Employees whose appointments are requested.
            start: Window start, in the storage timezone.
            end: Window end, in the storage timezone.

        Returns:
            Candidate appointments. Callers re-filter the result, so
            overlap vs. containment is up to the implementation.
        """
        pass


class SettingsProvider(ABC):
    """Abstract base class for slot settings."""

    @abstractmethod
    def get_time_slot_length(self) -> int:
        """Slot granularity in minutes."""
        pass

    @abstractmethod
    def get_slots_for_range(self, open_at: datetime, close_at: datetime) -> list[str]:
        """Get "HH:MM" slot labels from ``open_at`` up to ``close_at``."""
        pass
