"""
Read side of the series store: lakh scaling, OI difference and PCR.

pcr sign convention: the magnitude is |put / call|, negated whenever the put
side change is not positive, so a negative pcr reads "puts not dominant".
"""

from typing import List

from oi_monitor.core.data.schema import Snapshot, StrikePoint, TotalsPoint
from oi_monitor.core.data.transforms import to_lakhs
from oi_monitor.core.engine.window import TOTALS_STRIKE
from oi_monitor.core.scheduler.market_calendar import MarketCalendar
from oi_monitor.core.storage.series_store import SeriesStore
from oi_monitor.core.utils.logger import get_logger
from oi_monitor.errors import (
    DivisionUndefined,
    MarketClosedError,
    SeriesNotFoundError,
)

logger = get_logger(__name__)


def compute_pcr(put_lac: float, call_lac: float) -> float:
    """
    Raises:
        DivisionUndefined: call_lac is zero
    """
    if call_lac == 0:
        raise DivisionUndefined(f"pcr undefined, call change is zero (put {put_lac})")

    pcr = abs(round(put_lac / call_lac, 2))
    return pcr if put_lac > 0 else -pcr


def oi_diff(put_lac: float, call_lac: float) -> float:
    return round(put_lac - call_lac, 2)


class AnalyticsReader:
    def __init__(self, store: SeriesStore, calendar: MarketCalendar):
        self.store = store
        self.calendar = calendar

    async def _load(self, symbol: str, strike: int) -> List[Snapshot]:
        series = await self.store.read_series(symbol, strike)
        if series:
            return series

        if not self.calendar.is_session_open():
            raise MarketClosedError(symbol, strike, "Wait for market opening")
        raise SeriesNotFoundError(
            symbol, strike, f"no series stored for {symbol} strike {strike}"
        )

    async def read_totals(self, symbol: str) -> List[TotalsPoint]:
        """Totals series of symbol, pcr is None where the call side change is zero"""
        series = await self._load(symbol, TOTALS_STRIKE)

        points = []
        for entry in series:
            put_lac = to_lakhs(entry.puts_coi)
            call_lac = to_lakhs(entry.calls_coi)
            try:
                pcr = compute_pcr(put_lac, call_lac)
            except DivisionUndefined:
                logger.debug(f"{symbol} {entry.time}: {put_lac}/{call_lac}, pcr left empty")
                pcr = None

            points.append(
                TotalsPoint(
                    spot=entry.spot,
                    pcr=pcr,
                    oidiff=oi_diff(put_lac, call_lac),
                    time=entry.time,
                    puts_coi=put_lac,
                    calls_coi=call_lac,
                )
            )
        return points

    async def read_strike(self, symbol: str, strike: int) -> List[StrikePoint]:
        series = await self._load(symbol, strike)
        return [
            StrikePoint(
                oidiff=oi_diff(to_lakhs(entry.puts_coi), to_lakhs(entry.calls_coi)),
                time=entry.time,
            )
            for entry in series
        ]
