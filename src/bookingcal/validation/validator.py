"""Validation module for verifying daily schedule consistency.

This module checks that a DailySchedule produced by the calendar engine
holds its invariants before it is rendered or exported.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Optional

from bookingcal.domain.models import DailySchedule
from bookingcal.scheduling.timezones import parse_time_of_day, shift


class ValidationErrorType(Enum):
    """Types of validation errors."""

    APPOINTMENT_NOT_IN_WINDOW = "appointment_not_in_window"
    APPOINTMENT_OUTSIDE_DAY = "appointment_outside_day"
    CLOSE_NOT_AFTER_OPEN = "close_not_after_open"
    WINDOW_MISMATCH = "window_mismatch"
    EMPLOYEE_NOT_AT_LOCATION = "employee_not_at_location"
    INVALID_SLOT = "invalid_slot"
    SLOTS_NOT_ORDERED = "slots_not_ordered"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    appointment_id: Optional[int] = None
    employee_id: Optional[int] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.appointment_id is not None:
            parts.append(f"Appointment {self.appointment_id}:")
        if self.employee_id is not None:
            parts.append(f"Employee {self.employee_id}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a schedule."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)


class ScheduleValidator:
    """Validates daily schedules against their invariants.

    Example:
        >>> validator = ScheduleValidator()
        >>> result = validator.validate(schedule)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def __init__(self, lookup_days: int = 7):
        self.lookup_days = lookup_days

    def validate(self, schedule: DailySchedule) -> ValidationResult:
        """Validate a complete daily schedule.

        Args:
            schedule: The schedule to validate.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult(is_valid=True)

        self._validate_hours(schedule, result)
        self._validate_window(schedule, result)
        self._validate_employees(schedule, result)
        self._validate_appointments(schedule, result)
        self._validate_slots(schedule, result)

        return result

    def _validate_hours(self, schedule: DailySchedule, result: ValidationResult) -> None:
        if schedule.close <= schedule.open:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.CLOSE_NOT_AFTER_OPEN,
                    message=(
                        f"Close {schedule.close.isoformat()} is not after "
                        f"open {schedule.open.isoformat()}"
                    ),
                )
            )

    def _validate_window(self, schedule: DailySchedule, result: ValidationResult) -> None:
        lookup = timedelta(days=self.lookup_days)
        expected_start = schedule.day_start.date() - lookup
        expected_end = schedule.day_end.date() + lookup

        if (
            schedule.window_start.date() != expected_start
            or schedule.window_start.time() != schedule.day_start.time()
        ):
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.WINDOW_MISMATCH,
                    message=f"Window starts at {schedule.window_start.isoformat()}",
                    details={"expected_date": expected_start.isoformat()},
                )
            )

        if (
            schedule.window_end.date() != expected_end
            or schedule.window_end.time() != schedule.day_end.time()
        ):
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.WINDOW_MISMATCH,
                    message=f"Window ends at {schedule.window_end.isoformat()}",
                    details={"expected_date": expected_end.isoformat()},
                )
            )

    def _validate_employees(self, schedule: DailySchedule, result: ValidationResult) -> None:
        location_id = schedule.location.id
        if location_id <= 0 and schedule.employees:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.EMPLOYEE_NOT_AT_LOCATION,
                    message="Employees listed for an invalid location id",
                )
            )
            return

        for employee in schedule.employees:
            if not employee.serves_location(location_id):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.EMPLOYEE_NOT_AT_LOCATION,
                        message=f"Not assigned to location {location_id}",
                        employee_id=employee.id,
                    )
                )

    def _validate_appointments(self, schedule: DailySchedule, result: ValidationResult) -> None:
        window_ids = {getattr(a, "id", None) for a in schedule.window_appointments}
        lower = schedule.day_start.timestamp()
        upper = schedule.day_end.timestamp()

        for appointment in schedule.appointments:
            if appointment.id not in window_ids:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.APPOINTMENT_NOT_IN_WINDOW,
                        message="Day appointment missing from window appointments",
                        appointment_id=appointment.id,
                    )
                )

            start_ts = appointment.scheduled_start.timestamp()
            if not lower <= start_ts <= upper:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.APPOINTMENT_OUTSIDE_DAY,
                        message=(
                            f"Starts at {appointment.scheduled_start.isoformat()}, "
                            f"outside {schedule.schedule_date}"
                        ),
                        appointment_id=appointment.id,
                    )
                )

            if appointment.employee_id is None:
                result.add_warning(
                    f"Appointment {appointment.id} has no employee and will not be shown"
                )

    def _validate_slots(self, schedule: DailySchedule, result: ValidationResult) -> None:
        if not schedule.slots:
            if not schedule.is_closed:
                result.add_warning(f"No slots generated for open day {schedule.schedule_date}")
            return

        # Slot k starts at open + k * slot_length; labels repeat on DST fall-back days.
        step = timedelta(minutes=schedule.slot_length)
        for index, slot in enumerate(schedule.slots):
            if parse_time_of_day(slot) is None or len(slot) != 5:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.INVALID_SLOT,
                        message=f"Slot '{slot}' is not HH:MM",
                    )
                )
                continue
            expected = shift(schedule.open, step * index).strftime("%H:%M")
            if slot != expected:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.SLOTS_NOT_ORDERED,
                        message=f"Slot {index} is {slot}, expected {expected}",
                    )
                )
