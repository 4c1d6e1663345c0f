"""Injectable time source.

Every "today"/"now" comparison in the booking core goes through a Clock so
tests can pin time.  The system clock reports wall-clock time in the
community's timezone, because booking dates and operating hours are local.
"""
from datetime import date, datetime
from typing import Optional, Protocol

import pytz

from app.config import settings


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Real time, localized to the configured community timezone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = pytz.timezone(tz_name or settings.COMMUNITY_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(pytz.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """A clock frozen at a given instant (tests, replays), read in the community timezone."""

    def __init__(self, instant: datetime, tz_name: Optional[str] = None):
        if instant.tzinfo is None:
            instant = pytz.utc.localize(instant)
        self.instant = instant
        self.tz = pytz.timezone(tz_name or settings.COMMUNITY_TIMEZONE)

    def now(self) -> datetime:
        return self.instant.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency — overridden in tests with a FixedClock."""
    return _system_clock
