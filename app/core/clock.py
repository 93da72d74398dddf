"""
Clock providers for the date-driven reset machinery

Production wires the wall clock in the configured timezone; tests and
manual runs wire a fixed date.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of "today" and "now" for the reset engine"""

    def today(self) -> date:
        ...

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in a fixed IANA timezone"""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """Clock pinned to a given date; `advance` moves it forward"""

    def __init__(self, current: date):
        self.current = current

    def today(self) -> date:
        return self.current

    def now(self) -> datetime:
        return datetime.combine(self.current, time(12, 0), tzinfo=timezone.utc)

    def advance(self, days: int = 1) -> date:
        self.current = self.current + timedelta(days=days)
        return self.current


def today_iso(clock: Clock) -> str:
    """Today as YYYY-MM-DD"""
    return clock.today().isoformat()


def yesterday_iso(clock: Clock) -> str:
    """Yesterday as YYYY-MM-DD"""
    return (clock.today() - timedelta(days=1)).isoformat()


def build_clock(tz_name: str, fixed_date: Optional[str] = None) -> Clock:
    """Create the clock described by configuration"""
    if fixed_date:
        return FixedClock(date.fromisoformat(fixed_date))
    return SystemClock(tz_name)
