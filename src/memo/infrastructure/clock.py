"""Wall-clock implementation of the Clock port."""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from memo.domain.interfaces import Clock


class SystemClock(Clock):
    """
    Reads the system time in a fixed timezone.

    "Today" for daily statistics is the calendar date in this timezone, so a
    deployment serving one region should configure that region's zone.
    """

    def __init__(self, tz: str | tzinfo = "UTC"):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def now(self) -> datetime:
        return datetime.now(self.tz)
