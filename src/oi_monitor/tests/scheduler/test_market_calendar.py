# tests/scheduler/test_market_calendar.py
from datetime import date, datetime, time

import pytest

from oi_monitor.core.scheduler.market_calendar import (
    is_trading_day,
    is_within_trading_window,
)


def test_listed_holidays_are_not_trading_days():
    assert not is_trading_day(date(2023, 12, 25))
    assert not is_trading_day(datetime(2023, 11, 14, 10, 0))
    assert is_trading_day(date(2023, 11, 15))


def test_custom_holiday_list():
    assert not is_trading_day(date(2024, 1, 26), holidays=["26-01-2024"])
    assert is_trading_day(date(2023, 12, 25), holidays=["26-01-2024"])


@pytest.mark.parametrize(
    "value, expected",
    [
        (time(9, 19), False),
        (time(9, 20), True),
        (time(10, 5), True),
        (time(12, 0), True),
        (time(15, 19), True),
        (time(15, 30), True),
        (time(15, 31), False),
        (time(8, 45), False),
        (time(16, 20), False),
    ],
)
def test_trading_window_band(value, expected):
    assert is_within_trading_window(value) is expected


def test_calendar_session_uses_its_clock(make_calendar):
    assert make_calendar(datetime(2023, 11, 15, 10, 5)).is_session_open()
    assert not make_calendar(datetime(2023, 11, 15, 16, 0)).is_session_open()
    assert not make_calendar(
        datetime(2023, 11, 15, 10, 5), holidays=["15-11-2023"]
    ).is_session_open()
