"""Command-line interface for the booking calendar."""

import argparse
import json
import logging
import sys
from datetime import date, timedelta
from typing import Optional

from bookingcal.domain.models import ServiceError
from bookingcal.output.agenda_generator import AgendaGenerator
from bookingcal.output.pdf_generator import PDFGenerator
from bookingcal.scheduling.calendar_service import CalendarService
from bookingcal.storage.memory import Fixture, build_fixture, load_fixture
from bookingcal.validation.validator import ScheduleValidator


def configure_logging(verbose: bool) -> None:
    """Configure root logging for command-line runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_sample_fixture(
    schedule_date: Optional[date] = None,
    employee_count: int = 3,
) -> Fixture:
    """Create a sample fixture with one location and a few bookings.

    Args:
        schedule_date: Day the sample appointments are placed on.
            Defaults to today.
        employee_count: Number of employees to create.
    """
    if schedule_date is None:
        schedule_date = date.today()

    names = ["Anna", "Bence", "Csilla", "Dora", "Emil", "Flora", "Gabor", "Hanna"]
    services = [
        ("Haircut", "#3366ff", "#ffffff"),
        ("Massage", "0f766e", None),
        ("Consultation", "not-a-colour", None),
    ]
    customers = [("Alex", "Smith"), ("Kim", None), (None, None)]

    employees = []
    appointments = []
    booking_id = 1
    for i in range(employee_count):
        employee_id = 11 + i
        employees.append(
            {
                "id": employee_id,
                "name": names[i % len(names)],
                "location_ids": [5],
            }
        )
        # Stagger bookings per employee through the morning
        for j, (service, background, text) in enumerate(services):
            day = schedule_date + timedelta(days=7 if j == 2 and i == 0 else 0)
            start_minutes = 9 * 60 + 30 * i + 90 * j
            first, last = customers[(i + j) % len(customers)]
            appointments.append(
                {
                    "booking_id": booking_id,
                    "employee_id": employee_id,
                    "employee_name": names[i % len(names)],
                    "service_id": j + 1,
                    "service_name": service,
                    "service_background_color": background,
                    "service_text_color": text,
                    "customer_first_name": first,
                    "customer_last_name": last,
                    "customer_account_name": "Walk-in",
                    "scheduled_start": f"{day} {start_minutes // 60:02d}:{start_minutes % 60:02d}:00",
                    "scheduled_end": f"{day} {(start_minutes + 45) // 60:02d}:{(start_minutes + 45) % 60:02d}:00",
                    "status": "confirmed" if j % 2 == 0 else "pending",
                }
            )
            booking_id += 1

    week = {
        str(day): {"open": "09:00", "close": "17:00", "is_closed": day > 5}
        for day in range(1, 8)
    }

    return build_fixture(
        {
            "settings": {"time_slot_length": 30, "site_timezone": "Europe/Budapest"},
            "locations": [{"id": 5, "name": "HQ", "timezone": "Europe/Budapest"}],
            "employees": employees,
            "business_hours": {"5": week},
            "appointments": appointments,
        }
    )


def build_service(fixture: Fixture) -> CalendarService:
    """Wire a CalendarService to the providers of a fixture."""
    return CalendarService(
        appointments=fixture.appointments,
        employees=fixture.employees,
        business_hours=fixture.business_hours,
        locations=fixture.locations,
        settings=fixture.settings,
        site_timezone=fixture.site_timezone,
        logger=logging.getLogger("bookingcal.calendar"),
    )


def run_schedule(
    fixture: Fixture,
    location_id: int,
    schedule_date: date,
    output_format: str = "text",
    output_path: Optional[str] = None,
) -> int:
    """Print the daily schedule of a location."""
    service = build_service(fixture)
    schedule = service.get_daily_schedule(location_id, schedule_date)
    if isinstance(schedule, ServiceError):
        print(f"Error: {schedule}", file=sys.stderr)
        return 1

    if output_format == "json":
        payload = service.get_calendar_payload(location_id, schedule_date)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(AgendaGenerator().generate_to_string(schedule))

        result = ScheduleValidator(lookup_days=service.lookup_days).validate(schedule)
        if result.is_valid:
            print("\nValidation: PASSED")
        else:
            print(f"\nValidation: FAILED ({len(result.errors)} errors)")
            for error in result.errors[:5]:
                print(f"    - {error}")
            if len(result.errors) > 5:
                print(f"    ... and {len(result.errors) - 5} more errors")
        for warning in result.warnings[:3]:
            print(f"    warning: {warning}")

    if output_path:
        print(f"\nGenerating PDF: {output_path}", file=sys.stderr)
        PDFGenerator().generate(schedule, output_path)
        print("  PDF created successfully!", file=sys.stderr)

    return 0


def run_events(fixture: Fixture, location_id: int, schedule_date: date) -> int:
    """Print the calendar widget payload as JSON."""
    payload = build_service(fixture).get_calendar_payload(location_id, schedule_date)
    if isinstance(payload, ServiceError):
        print(f"Error: {payload}", file=sys.stderr)
        return 1
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def _add_day_arguments(parser: argparse.ArgumentParser, with_data: bool = True) -> None:
    if with_data:
        parser.add_argument(
            "--data", "-f",
            type=str,
            required=True,
            help="JSON fixture with settings, locations, employees, hours and appointments",
        )
    parser.add_argument(
        "--location", "-l",
        type=int,
        default=5,
        help="Location id (default: 5)",
    )
    parser.add_argument(
        "--date", "-d",
        type=_parse_date,
        default=None,
        help="Day to show, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log provider calls and fallbacks",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Booking Calendar - daily schedule viewer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                 Show a sample day
  %(prog)s demo --employees 5 --output day.pdf  Sample day as PDF

  %(prog)s schedule -f data.json -l 5 -d 2025-05-01
  %(prog)s schedule -f data.json -d 2025-05-01 --format json
  %(prog)s events -f data.json -l 5 -d 2025-05-01
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    demo_parser = subparsers.add_parser("demo", help="Show the schedule of a sample location")
    _add_day_arguments(demo_parser, with_data=False)
    demo_parser.add_argument(
        "--employees", "-e",
        type=int,
        default=3,
        help="Number of sample employees (default: 3)",
    )
    demo_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output PDF file path",
    )

    schedule_parser = subparsers.add_parser("schedule", help="Show the daily schedule of a location")
    _add_day_arguments(schedule_parser)
    schedule_parser.add_argument(
        "--format",
        type=str,
        default="text",
        choices=["text", "json"],
        help="Output format (default: text)",
    )
    schedule_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output PDF file path",
    )

    events_parser = subparsers.add_parser("events", help="Print calendar events as JSON")
    _add_day_arguments(events_parser)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    schedule_date = args.date or date.today()

    if args.command == "demo":
        fixture = create_sample_fixture(schedule_date, args.employees)
    else:
        try:
            fixture = load_fixture(args.data)
        except (OSError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    configure_logging(args.verbose or fixture.settings.enable_debug_logging)

    if args.command == "demo":
        return run_schedule(fixture, args.location, schedule_date, "text", args.output)
    elif args.command == "schedule":
        return run_schedule(fixture, args.location, schedule_date, args.format, args.output)
    elif args.command == "events":
        return run_events(fixture, args.location, schedule_date)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
