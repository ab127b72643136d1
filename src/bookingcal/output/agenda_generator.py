"""Plain-text agenda output for a daily schedule.

This module creates a text view of one location's day:
- Business hours and slot settings
- Per-employee appointment lists
- A slot occupancy grid
"""

from pathlib import Path
from typing import Union

from bookingcal.domain.models import Appointment, DailySchedule
from bookingcal.scheduling.events import format_customer_name


class AgendaGenerator:
    """Generates a printable text agenda for a DailySchedule."""

    def generate(self, schedule: DailySchedule, output_path: Union[str, Path]) -> str:
        """Generate the agenda and save it to a file.

        Args:
            schedule: The daily schedule to render.
            output_path: Path to save the text file.

        Returns:
            The generated text content.
        """
        content = self._generate_content(schedule)
        Path(output_path).write_text(content, encoding="utf-8")
        return content

    def generate_to_string(self, schedule: DailySchedule) -> str:
        """Generate the agenda and return it as a string."""
        return self._generate_content(schedule)

    def _generate_content(self, schedule: DailySchedule) -> str:
        lines = []

        # Header
        lines.append("=" * 80)
        lines.append(
            f"{schedule.location.name} - {schedule.schedule_date.strftime('%A, %B %d, %Y')}"
        )
        lines.append("=" * 80)
        lines.append(f"Timezone: {schedule.timezone}")
        if schedule.is_closed:
            lines.append("Business hours: CLOSED")
        else:
            lines.append(
                f"Business hours: {schedule.open.strftime('%H:%M')} - "
                f"{schedule.close.strftime('%H:%M')}"
            )
        lines.append(f"Slot length: {schedule.slot_length} minutes ({len(schedule.slots)} slots)")
        lines.append(
            f"Appointments: {len(schedule.appointments)} today, "
            f"{len(schedule.window_appointments)} in lookup window"
        )
        lines.append("")

        if not schedule.employees:
            lines.append("No employees assigned to this location.")
            lines.append("")
            return "\n".join(lines)

        # Per-employee agenda
        lines.append("-" * 80)
        lines.append("APPOINTMENTS BY EMPLOYEE")
        lines.append("-" * 80)

        for employee in schedule.employees:
            appointments = schedule.get_appointments_for_employee(employee.id)
            lines.append(f"\n{employee.name} ({len(appointments)} appointments)")
            if not appointments:
                lines.append("    -")
            for appointment in appointments:
                lines.append("    " + self._format_appointment(schedule, appointment))

        lines.append("")

        # Occupancy grid
        lines.append("-" * 80)
        lines.append("SLOT OCCUPANCY")
        lines.append("-" * 80)

        name_width = 16
        header = f"{'Slot':<6} " + " ".join(
            f"{e.name[:name_width]:<{name_width}}" for e in schedule.employees
        )
        lines.append(header)

        occupancy = self._build_occupancy(schedule)
        for slot in schedule.slots:
            cells = []
            for employee in schedule.employees:
                label = occupancy.get((slot, employee.id), ".")
                cells.append(f"{label[:name_width]:<{name_width}}")
            lines.append(f"{slot:<6} " + " ".join(cells))

        lines.append("")
        lines.append("=" * 80)
        lines.append("END OF AGENDA")
        lines.append("=" * 80)

        return "\n".join(lines)

    def _format_appointment(self, schedule: DailySchedule, appointment: Appointment) -> str:
        start = appointment.scheduled_start.astimezone(schedule.timezone)
        end = appointment.scheduled_end.astimezone(schedule.timezone)
        customer = format_customer_name(appointment) or "-"
        service = appointment.service_name or "Appointment"
        return (
            f"{start.strftime('%H:%M')}-{end.strftime('%H:%M')}  "
            f"{service:<20} {customer:<24} [{appointment.status}]"
        )

    def _build_occupancy(self, schedule: DailySchedule) -> dict[tuple[str, int], str]:
        """Map (slot label, employee id) to the service booked in that slot."""
        occupancy = {}
        for appointment in schedule.appointments:
            if appointment.employee_id is None:
                continue
            start = appointment.scheduled_start.astimezone(schedule.timezone).strftime("%H:%M")
            end = appointment.scheduled_end.astimezone(schedule.timezone).strftime("%H:%M")
            if end <= start:
                end = "24:00"
            for slot in schedule.slots:
                if start <= slot < end:
                    occupancy[(slot, appointment.employee_id)] = (
                        appointment.service_name or "booked"
                    )
        return occupancy
