"""General booking settings.

Holds the site-wide configuration the calendar needs: slot granularity,
the site (storage) timezone and the debug logging switch.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any, Optional

from bookingcal.domain.models import as_bool
from bookingcal.domain.providers import SettingsProvider
from bookingcal.scheduling.timezones import at_time, resolve_timezone, shift

DEFAULT_SLOT_LENGTH = 30
MIN_SLOT_LENGTH = 5
ALLOWED_SLOT_LENGTHS = (5, 10, 15, 20, 30, 45, 60, 90, 120)


def _as_int(value: Any) -> Optional[int]:
    try:
        return abs(int(value))
    except (TypeError, ValueError):
        return None


@dataclass
class GeneralSettings(SettingsProvider):
    """Site-wide booking settings.

    Attributes:
        time_slot_length: Slot granularity in minutes. Values outside
            ALLOWED_SLOT_LENGTHS are ignored in favour of the default.
        site_timezone: IANA name of the timezone appointments are stored in.
        enable_debug_logging: Whether debug output should be logged.

    Example:
        >>> settings = GeneralSettings(time_slot_length=15)
        >>> settings.get_slots_for_range(open_at, close_at)
        ['09:00', '09:15', '09:30', ...]
    """

    time_slot_length: int = DEFAULT_SLOT_LENGTH
    site_timezone: str = "UTC"
    enable_debug_logging: bool = False

    @classmethod
    def from_mapping(cls, option: Any) -> "GeneralSettings":
        """Build settings from a stored option mapping merged over defaults.

        Non-mapping input is treated as an empty option.
        """
        if not isinstance(option, Mapping):
            option = {}

        length = _as_int(option.get("time_slot_length", DEFAULT_SLOT_LENGTH))
        return cls(
            time_slot_length=length if length is not None else DEFAULT_SLOT_LENGTH,
            site_timezone=str(option.get("site_timezone") or "UTC"),
            enable_debug_logging=as_bool(option.get("enable_debug_logging", False)),
        )

    @staticmethod
    def sanitize(submitted: Mapping) -> dict[str, Any]:
        """Sanitize a submitted settings payload.

        Unknown keys are dropped and slot lengths that are not allowed keep
        the default.
        """
        sanitized: dict[str, Any] = {
            "time_slot_length": DEFAULT_SLOT_LENGTH,
            "site_timezone": "UTC",
            "enable_debug_logging": False,
        }

        if "enable_debug_logging" in submitted:
            sanitized["enable_debug_logging"] = as_bool(submitted["enable_debug_logging"])

        if "time_slot_length" in submitted:
            length = _as_int(submitted["time_slot_length"])
            if length in ALLOWED_SLOT_LENGTHS:
                sanitized["time_slot_length"] = length

        if submitted.get("site_timezone"):
            sanitized["site_timezone"] = str(submitted["site_timezone"]).strip()

        return sanitized

    def get_time_slot_length(self) -> int:
        length = self.time_slot_length
        if length not in ALLOWED_SLOT_LENGTHS:
            length = DEFAULT_SLOT_LENGTH
        return max(MIN_SLOT_LENGTH, length)

    def get_slot_length_options(self) -> dict[int, str]:
        """Get selectable slot lengths with their labels."""
        return {minutes: f"{minutes} minutes" for minutes in ALLOWED_SLOT_LENGTHS}

    def get_slots_for_range(self, open_at: datetime, close_at: datetime) -> list[str]:
        if close_at <= open_at:
            return []

        step = timedelta(minutes=self.get_time_slot_length())
        slots = []
        current = open_at
        while current < close_at:
            slots.append(current.strftime("%H:%M"))
            current = shift(current, step)
        return slots

    def get_time_slots(self, now: Optional[datetime] = None) -> list[str]:
        """Get the full 24-hour slot grid for today in the site timezone."""
        tz = resolve_timezone(self.site_timezone)
        today = (now.astimezone(tz) if now else datetime.now(tz)).date()
        start = at_time(tz, today, time(0, 0))
        end = at_time(tz, today + timedelta(days=1), time(0, 0))
        return self.get_slots_for_range(start, end)
