"""PDF generation for daily schedule output.

This module creates printable PDF day sheets showing:
- One timeline row per employee across business hours
- Appointment blocks in the service colours with time and customer labels
- A summary of the day's bookings
"""

from collections import Counter
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Union

from bookingcal.domain.models import Appointment, DailySchedule, Employee
from bookingcal.scheduling.events import (
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_TEXT_COLOR,
    format_customer_name,
    normalize_color,
)

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "closed": (0.85, 0.85, 0.85),  # Gray
    "open": (0.97, 0.97, 0.97),  # Light gray
    "grid": (0.75, 0.75, 0.75),
}


def hex_to_rgb(value: str) -> tuple[float, float, float]:
    """Convert a normalized "#RGB" / "#RRGGBB" colour to 0-1 RGB."""
    digits = value.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return tuple(int(digits[i : i + 2], 16) / 255 for i in (0, 2, 4))


class PDFGenerator:
    """Generates printable PDF day sheets.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(schedule, "day.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        schedule: DailySchedule,
        output_path: Union[str, Path],
        include_summary: bool = True,
    ) -> None:
        """Generate the PDF and save it to a file.

        Args:
            schedule: The daily schedule to render.
            output_path: Path to save the PDF.
            include_summary: Whether to include the summary page.
        """
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=landscape(letter))
        self._draw(c, schedule, include_summary)
        c.save()

    def generate_to_buffer(
        self,
        schedule: DailySchedule,
        include_summary: bool = True,
    ) -> BytesIO:
        """Generate the PDF and return it as a bytes buffer."""
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        self._draw(c, schedule, include_summary)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(self, c, schedule: DailySchedule, include_summary: bool) -> None:
        c.setTitle(f"{schedule.location.name} {schedule.schedule_date.isoformat()}")
        self._draw_schedule_pages(c, schedule)
        if include_summary:
            self._draw_summary_page(c, schedule)

    def _draw_schedule_pages(self, c, schedule: DailySchedule) -> None:
        """Draw the timeline pages, one row per employee."""
        row_height = 36
        header_height = 60
        footer_height = 40
        usable_height = self.page_height - 2 * self.margin - header_height - footer_height
        rows_per_page = max(1, int(usable_height / row_height))

        timeline_left = self.margin + 120  # Space for names
        timeline_right = self.page_width - self.margin - 20
        timeline_width = timeline_right - timeline_left

        employees = sorted(schedule.employees, key=lambda e: e.name)
        pages = [
            employees[i : i + rows_per_page]
            for i in range(0, len(employees), rows_per_page)
        ] or [[]]

        for page_num, page_employees in enumerate(pages, 1):
            self._draw_header(c, schedule)
            axis_y = self.page_height - self.margin - header_height - 20
            self._draw_time_axis(c, schedule, timeline_left, axis_y, timeline_width)

            y = axis_y - 10
            for employee in page_employees:
                y -= row_height
                self._draw_employee_row(
                    c, schedule, employee, timeline_left, timeline_width, y, row_height - 6
                )

            if not page_employees:
                c.setFont("Helvetica-Oblique", 11)
                c.drawString(self.margin, y - 30, "No employees assigned to this location.")

            c.setFont("Helvetica", 9)
            c.drawCentredString(
                self.page_width / 2,
                self.margin - 10,
                f"Page {page_num} of {len(pages)}",
            )
            c.showPage()

    def _draw_header(self, c, schedule: DailySchedule) -> None:
        """Draw page header with location, date and hours."""
        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"{schedule.location.name} - {schedule.schedule_date.strftime('%A, %B %d, %Y')}",
        )

        if schedule.is_closed:
            hours = "Closed"
        else:
            hours = f"{schedule.open.strftime('%H:%M')} - {schedule.close.strftime('%H:%M')}"

        c.setFont("Helvetica", 10)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 35,
            f"Business hours: {hours} ({schedule.timezone})   "
            f"Appointments: {len(schedule.appointments)}",
        )

    def _draw_time_axis(self, c, schedule: DailySchedule, x: float, y: float, width: float) -> None:
        """Draw the slot axis with a label on every full hour."""
        if not schedule.slots:
            return

        slot_width = width / len(schedule.slots)
        c.setFont("Helvetica", 8)
        c.setStrokeColorRGB(*COLORS["grid"])

        for index, slot in enumerate(schedule.slots):
            slot_x = x + index * slot_width
            c.line(slot_x, y, slot_x, y - 5)
            if slot.endswith(":00"):
                c.drawCentredString(slot_x, y + 5, slot)

        c.line(x + width, y, x + width, y - 5)

    def _position(self, schedule: DailySchedule, moment: datetime) -> float:
        """Get the 0-1 position of an instant between open and close."""
        total = (schedule.close - schedule.open).total_seconds()
        offset = (moment - schedule.open).total_seconds()
        return min(1.0, max(0.0, offset / total))

    def _draw_employee_row(
        self,
        c,
        schedule: DailySchedule,
        employee: Employee,
        timeline_x: float,
        timeline_width: float,
        y: float,
        height: float,
    ) -> None:
        """Draw a single employee's timeline row."""
        appointments = schedule.get_appointments_for_employee(employee.id)

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica", 9)
        c.drawString(self.margin, y + height / 2, employee.name[:20])
        c.setFont("Helvetica", 7)
        c.drawString(self.margin, y + height / 2 - 10, f"{len(appointments)} appointments")

        background = COLORS["closed"] if schedule.is_closed else COLORS["open"]
        c.setFillColorRGB(*background)
        c.rect(timeline_x, y, timeline_width, height, fill=1, stroke=0)

        for appointment in appointments:
            self._draw_appointment(c, schedule, appointment, timeline_x, timeline_width, y, height)

        c.setStrokeColorRGB(0.3, 0.3, 0.3)
        c.setLineWidth(0.5)
        c.rect(timeline_x, y, timeline_width, height, fill=0, stroke=1)

    def _draw_appointment(
        self,
        c,
        schedule: DailySchedule,
        appointment: Appointment,
        timeline_x: float,
        timeline_width: float,
        y: float,
        height: float,
    ) -> None:
        start = appointment.scheduled_start.astimezone(schedule.timezone)
        end = appointment.scheduled_end.astimezone(schedule.timezone)
        bx = timeline_x + self._position(schedule, start) * timeline_width
        bw = (self._position(schedule, end) - self._position(schedule, start)) * timeline_width
        if bw <= 0:
            return

        fill = normalize_color(appointment.service_background_color, DEFAULT_BACKGROUND_COLOR)
        text = normalize_color(appointment.service_text_color, DEFAULT_TEXT_COLOR)

        c.setFillColorRGB(*hex_to_rgb(fill))
        c.rect(bx, y, bw, height, fill=1, stroke=0)

        c.setFillColorRGB(*hex_to_rgb(text))
        c.setFont("Helvetica-Bold", 7)
        c.drawString(bx + 2, y + height - 9, f"{start.strftime('%H:%M')}-{end.strftime('%H:%M')}")
        c.setFont("Helvetica", 6)
        label = appointment.service_name or "Appointment"
        customer = format_customer_name(appointment)
        if customer:
            label = f"{label} / {customer}"
        max_chars = max(0, int(bw / 3.2))
        c.drawString(bx + 2, y + 4, label[:max_chars])

    def _draw_summary_page(self, c, schedule: DailySchedule) -> None:
        """Draw summary page with booking statistics."""
        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Day Summary - {schedule.schedule_date.strftime('%A, %B %d, %Y')}",
        )

        y = self.page_height - self.margin - 60

        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Overview")
        y -= 20

        booked_minutes = sum(
            (a.scheduled_end - a.scheduled_start).total_seconds() / 60
            for a in schedule.appointments
        )
        open_minutes = 0.0
        if not schedule.is_closed:
            open_minutes = (schedule.close - schedule.open).total_seconds() / 60
        capacity = open_minutes * len(schedule.employees)

        stats = [
            f"Employees: {len(schedule.employees)}",
            f"Slots: {len(schedule.slots)} x {schedule.slot_length} min",
            f"Appointments today: {len(schedule.appointments)}",
            f"Appointments in lookup window: {len(schedule.window_appointments)}",
            f"Booked hours: {booked_minutes / 60:.1f}",
        ]
        if capacity:
            stats.append(f"Utilization: {100 * booked_minutes / capacity:.1f}%")

        c.setFont("Helvetica", 10)
        for stat in stats:
            c.drawString(self.margin + 20, y, stat)
            y -= 15

        y -= 20
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Appointments by Status")
        y -= 18

        c.setFont("Helvetica", 10)
        by_status = Counter(a.status for a in schedule.appointments)
        for status, count in sorted(by_status.items()):
            c.drawString(self.margin + 20, y, f"{status}: {count}")
            y -= 15

        y -= 20
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Appointments by Service")
        y -= 18

        c.setFont("Helvetica", 10)
        by_service = Counter(a.service_name or "Appointment" for a in schedule.appointments)
        for service, count in by_service.most_common():
            c.drawString(self.margin + 20, y, f"{service}: {count}")
            y -= 15

        c.showPage()
