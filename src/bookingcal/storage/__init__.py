"""Reference provider implementations backed by memory or JSON fixtures."""

from bookingcal.storage.memory import (
    Fixture,
    InMemoryAppointmentProvider,
    InMemoryBusinessHoursProvider,
    InMemoryEmployeeProvider,
    InMemoryLocationProvider,
    build_fixture,
    empty_week,
    load_fixture,
)

__all__ = [
    "Fixture",
    "InMemoryAppointmentProvider",
    "InMemoryBusinessHoursProvider",
    "InMemoryEmployeeProvider",
    "InMemoryLocationProvider",
    "build_fixture",
    "empty_week",
    "load_fixture",
]
