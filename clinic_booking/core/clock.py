"""
Clock abstraction used for every "now" / "today" comparison.

Appointment dates and times are wall-clock values in the clinic timezone, so
the clock returns naive datetimes in that timezone. Tests override the
``get_clock`` dependency with a frozen clock.
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo


class Clock:
    """Source of the current time in the clinic timezone."""

    def __init__(self, timezone_name: str = "UTC"):
        self.tz = ZoneInfo(timezone_name)

    def now(self) -> datetime:
        """Current clinic-local time as a naive datetime."""
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

