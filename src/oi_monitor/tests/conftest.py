from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from oi_monitor.core.data.schema import RawChainSnapshot
from oi_monitor.core.scheduler.market_calendar import MarketCalendar

IST = ZoneInfo("Asia/Kolkata")


def _payload(strikes, spot, expiry_dates=None):
    rows = []
    for i, strike in enumerate(strikes):
        rows.append(
            {
                "strike_price": strike,
                "calls_oi": 1_000_000.0 + i,
                "calls_change_oi": 1000.0 * (i + 1),
                "puts_oi": 2_000_000.0 + i,
                "puts_change_oi": 500.0 * (i + 1),
                "index_close": spot,
                "expiry_date": "2023-11-30",
            }
        )
    return {
        "result": 1,
        "resultData": {
            "opDatas": rows,
            "opExpiryDates": expiry_dates if expiry_dates is not None else [],
        },
    }


@pytest.fixture
def make_payload():
    """payload(strikes, spot) -> upstream json; row i has calls COI 1000*(i+1), puts COI 500*(i+1)"""
    return _payload


@pytest.fixture
def make_snapshot():
    def factory(symbol, strikes, spot, expiry_dates=None):
        return RawChainSnapshot.from_api_response(
            symbol, _payload(strikes, spot, expiry_dates)
        )

    return factory


class FakeProvider:
    """Stands in for OptionChainProvider, answers from a dict of symbol -> snapshot or error"""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []
        self.closed = False

    async def fetch(self, symbol, expiry=None):
        self.calls.append((symbol, expiry))
        answer = self.answers[symbol]
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def make_calendar():
    def factory(when=datetime(2023, 11, 15, 10, 5), holidays=()):
        return MarketCalendar(holidays=holidays, clock=lambda: when.replace(tzinfo=IST))

    return factory
