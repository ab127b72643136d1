"""Output generation for daily schedules (text, PDF)."""

from bookingcal.output.agenda_generator import AgendaGenerator
from bookingcal.output.pdf_generator import PDFGenerator

__all__ = [
    "AgendaGenerator",
    "PDFGenerator",
]
