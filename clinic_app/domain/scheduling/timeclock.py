"""
Wall-clock times as minutes since midnight.

Bookings store their start as a 12-hour label ("10:15 am"). All arithmetic
happens on ClockTime; parse_clock/format_clock are the only places strings
are read or produced.
"""

import re
from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60

_TWELVE_HOUR = re.compile(r"^(\d{1,2}):(\d{2})\s*([ap])\.?m\.?$", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True, order=True)
class ClockTime:
    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValueError(f"minutes out of range: {self.minutes}")

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def __add__(self, delta: int) -> "ClockTime":
        return ClockTime(self.minutes + delta)

    def __str__(self) -> str:
        return format_clock(self)


def parse_clock(text: str) -> ClockTime:
    """Parse "h:mm am/pm" or 24-hour "HH:MM[:SS]" into a ClockTime"""
    if text is None:
        raise ValueError("time is required")
    raw = text.strip()

    match = _TWELVE_HOUR.match(raw)
    if match:
        hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).lower()
        if not 1 <= hour <= 12 or minute > 59:
            raise ValueError(f"invalid 12-hour time: {text!r}")
        if meridiem == "p" and hour != 12:
            hour += 12
        elif meridiem == "a" and hour == 12:
            hour = 0
        return ClockTime(hour * 60 + minute)

    match = _TWENTY_FOUR_HOUR.match(raw)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            raise ValueError(f"invalid 24-hour time: {text!r}")
        return ClockTime(hour * 60 + minute)

    raise ValueError(f"unrecognized time format: {text!r}")


def format_clock(value: ClockTime) -> str:
    """Render as "h:mm am/pm" (noon is 12:00 pm, midnight is 12:00 am)"""
    hour = value.hour % 12 or 12
    meridiem = "am" if value.hour < 12 else "pm"
    return f"{hour}:{value.minute:02d} {meridiem}"
