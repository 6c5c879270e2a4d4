"""
Wall-clock abstraction.

Everything time-dependent (cache expiry, "today", the daily fire time) reads
the clock through this interface so tests can substitute a manual clock.
"""

from datetime import date, datetime, tzinfo
from typing import Optional, Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...

    def timestamp(self) -> float: ...


class SystemClock:
    """Local wall clock in the configured timezone."""

    def __init__(self, tz: Optional[str] = None):
        self._tz: Optional[tzinfo] = ZoneInfo(tz) if tz else None

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()

    def timestamp(self) -> float:
        return self.now().timestamp()
