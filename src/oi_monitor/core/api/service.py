"""
Public boundary of the OI change monitor

    ingest / reset_store / start_polling / stop_polling
    read_totals / read_strike / list_strikes / list_expiries / live_chain
"""

from typing import Iterable, List, Optional

from oi_monitor.config import Settings
from oi_monitor.core.api.analytics import AnalyticsReader
from oi_monitor.core.collector.ingestor import CycleReport, OIIngestor
from oi_monitor.core.collector.option_chain import OptionChainProvider
from oi_monitor.core.data.schema import LiveStrike, StrikePoint, TotalsPoint
from oi_monitor.core.data.transforms import chain_to_frame
from oi_monitor.core.engine.strikes import strike_list
from oi_monitor.core.engine.window import live_view
from oi_monitor.core.scheduler.daily_jobs import DailyScheduler
from oi_monitor.core.scheduler.market_calendar import MarketCalendar
from oi_monitor.core.scheduler.polling import PollingController
from oi_monitor.core.storage.redis_store import RedisSeriesStore
from oi_monitor.core.storage.series_store import MemorySeriesStore, SeriesStore
from oi_monitor.core.utils.logger import get_logger
from oi_monitor.errors import UpstreamError

logger = get_logger(__name__)


class OIMonitorService:
    def __init__(
        self,
        settings: Settings,
        store: SeriesStore,
        provider: OptionChainProvider,
        calendar: Optional[MarketCalendar] = None,
    ):
        self.settings = settings
        self.store = store
        self.provider = provider
        self.calendar = calendar or MarketCalendar(settings.holidays)

        self.ingestor = OIIngestor(provider, store, settings.max_concurrency)
        self.reader = AnalyticsReader(store, self.calendar)
        self.controller = PollingController(self._polling_cycle, settings.poll_interval)

    def _symbols(self, symbols: Optional[Iterable[str]]) -> List[str]:
        # series partitions are keyed by the upper-case symbol
        return [s.upper() for s in (symbols or self.settings.symbols)]

    # ---------- ingestion ----------
    async def ingest(self, symbols: Optional[Iterable[str]] = None) -> Optional[CycleReport]:
        """One ingestion cycle, None on a trading holiday"""
        if not self.calendar.is_trading_day():
            logger.info("Trading holiday, ingestion skipped")
            return None

        symbols = self._symbols(symbols)
        report = await self.ingestor.ingest(symbols)
        if report.ok:
            logger.info(f"OI data stored for {symbols}")
        else:
            logger.warning(f"Cycle finished with {len(report.errors)} errors: {report.errors}")
        return report

    async def _polling_cycle(self):
        return await self.ingest()

    async def reset_store(
        self, symbols: Optional[Iterable[str]] = None, force: bool = False
    ) -> bool:
        """
        Wipe the series of symbols. Skipped on a trading holiday unless forced,
        the previous session stays readable then.
        """
        if not force and not self.calendar.is_trading_day():
            logger.info("Trading holiday, previous day data kept")
            return False

        symbols = self._symbols(symbols)
        removed = await self.store.reset(symbols)
        logger.info(f"Series store initialized for {symbols}, {removed} series removed")
        return True

    def start_polling(self) -> bool:
        return self.controller.start()

    def stop_polling(self) -> bool:
        return self.controller.stop()

    def daily_scheduler(self) -> DailyScheduler:
        return DailyScheduler(self.controller, self.reset_store, self.calendar)

    # ---------- reads ----------
    async def read_totals(self, symbol: str) -> List[TotalsPoint]:
        return await self.reader.read_totals(symbol.upper())

    async def read_strike(self, symbol: str, strike: int) -> List[StrikePoint]:
        return await self.reader.read_strike(symbol.upper(), int(strike))

    async def list_strikes(self, symbol: str) -> List[int]:
        snapshot = await self.provider.fetch(symbol.upper())
        try:
            return strike_list(chain_to_frame(snapshot.rows), snapshot.spot)
        except ValueError as e:
            raise UpstreamError(symbol, f"cannot derive strike list: {e}") from e

    async def list_expiries(self, symbol: str) -> List[str]:
        snapshot = await self.provider.fetch(symbol.upper(), expiry="current")
        return snapshot.expiry_dates

    async def live_chain(self, symbol: str, expiry: Optional[str] = None) -> List[LiveStrike]:
        snapshot = await self.provider.fetch(symbol.upper(), expiry=expiry)
        return live_view(chain_to_frame(snapshot.rows), snapshot.spot)

    async def close(self):
        self.controller.stop()
        await self.controller.wait_idle()
        await self.provider.aclose()
        await self.store.close()


def build_service(settings: Settings, memory: bool = False) -> OIMonitorService:
    """
    Wire the service from settings

    Raises:
        ConfigurationError: redis backend selected without OI_REDIS_URL
    """
    if memory:
        store = MemorySeriesStore()
    else:
        store = RedisSeriesStore(settings.require_redis_url())

    provider = OptionChainProvider(
        url=settings.api_url,
        timeout=settings.http_timeout,
        retries=settings.http_retries,
    )
    return OIMonitorService(settings, store, provider)
