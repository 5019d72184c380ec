from datetime import date, datetime, time
from typing import Callable, Iterable, Optional, Union
from zoneinfo import ZoneInfo

from oi_monitor.config import (
    DEFAULT_HOLIDAYS,
    SESSION_CLOSE,
    SESSION_OPEN,
    TRADING_TIMEZONE,
)

HOLIDAY_FORMAT = "%d-%m-%Y"


def is_trading_day(day: Union[date, datetime], holidays: Iterable[str] = DEFAULT_HOLIDAYS) -> bool:
    """True unless day is on the holiday list (dd-MM-yyyy)"""
    return day.strftime(HOLIDAY_FORMAT) not in set(holidays)


def is_within_trading_window(value: Union[time, datetime]) -> bool:
    """
    True for 09:20 to 15:30 inclusive, trading timezone wall clock.
    Compared as (hour, minute) so 10:05 is inside the band.
    """
    current = (value.hour, value.minute)
    return SESSION_OPEN <= current <= SESSION_CLOSE


class MarketCalendar:
    """Holiday and session gate bound to the trading timezone"""

    def __init__(
        self,
        holidays: Iterable[str] = DEFAULT_HOLIDAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.holidays = set(holidays)
        self.tz = ZoneInfo(TRADING_TIMEZONE)
        self._clock = clock

    def now(self) -> datetime:
        if self._clock is not None:
            value = self._clock()
            if value.tzinfo is None:
                return value.replace(tzinfo=self.tz)
            return value.astimezone(self.tz)
        return datetime.now(self.tz)

    def is_trading_day(self, day: Optional[date] = None) -> bool:
        return is_trading_day(day or self.now(), self.holidays)

    def is_within_trading_window(self, value: Optional[datetime] = None) -> bool:
        return is_within_trading_window(value or self.now())

    def is_session_open(self) -> bool:
        now = self.now()
        return self.is_trading_day(now) and self.is_within_trading_window(now)
