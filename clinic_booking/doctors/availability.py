"""
Weekly availability model.

A doctor's open hours are a list of (day-of-week, start, end) intervals in
24-hour HH:MM. Input may leave the hour unpadded ("9:05"); schemas pass every
incoming time through normalize_time, so only the zero-padded form is stored.

Intervals are half-open: a doctor with 09:00-17:00 can be booked at 09:00
and 16:59 but not at 17:00. Overlapping intervals on the same
day are allowed and each one is checked on its own.
"""
import enum
import re
from datetime import date
from typing import Iterable, List, NamedTuple

# Hour may be one or two digits; minutes always two
TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


class Weekday(str, enum.Enum):
    """Days of the week, in date.weekday() order"""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class InvalidTimeFormat(ValueError):
    """Raised for a time-of-day string that is not HH:MM (00:00-23:59)."""

    def __init__(self, value):
        super().__init__(f"Invalid time format '{value}', expected HH:MM (24-hour)")
        self.value = value


class AvailabilitySlot(NamedTuple):
    day: Weekday
    start_time: str
    end_time: str

    @classmethod
    def from_dict(cls, data: dict) -> "AvailabilitySlot":
        return cls(Weekday(data["day"]), data["start_time"], data["end_time"])

    def to_dict(self) -> dict:
        return {"day": self.day.value, "start_time": self.start_time, "end_time": self.end_time}

    def covers(self, minutes: int) -> bool:
        return parse_time(self.start_time) <= minutes < parse_time(self.end_time)


def parse_time(value: str) -> int:
    """
    Convert an HH:MM string to minutes since midnight.

    A one-digit hour such as "9:05" is accepted as well.

    Raises:
        InvalidTimeFormat: If the string is not a valid 24-hour time
    """
    match = TIME_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeFormat(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def normalize_time(value: str) -> str:
    """Return the zero-padded form of a time string, e.g. '9:05' -> '09:05'."""
    minutes = parse_time(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_of_week(day: date) -> Weekday:
    return list(Weekday)[day.weekday()]


def slots_for_day(slots: Iterable[AvailabilitySlot], day: Weekday) -> List[AvailabilitySlot]:
    return [slot for slot in slots if slot.day == day]


def is_open_at(slots: Iterable[AvailabilitySlot], day: Weekday, time: str) -> bool:
    """
    Whether any slot on the given day covers the given time.

    Args:
        slots: The doctor's weekly availability
        day: Day of the week being asked about
        time: Requested time as HH:MM

    Returns:
        bool: True iff some slot has slot.day == day and start <= time < end

    Raises:
        InvalidTimeFormat: If the requested time is malformed
    """
    minutes = parse_time(time)
    return any(slot.covers(minutes) for slot in slots_for_day(slots, day))
