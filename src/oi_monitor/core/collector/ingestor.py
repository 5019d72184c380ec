import asyncio
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from prometheus_client import Counter, Summary

from oi_monitor.core.collector.option_chain import OptionChainProvider
from oi_monitor.core.data.schema import validate_chain_schema
from oi_monitor.core.data.transforms import chain_to_frame, to_trading_time
from oi_monitor.core.engine.atm import locate_atm
from oi_monitor.core.engine.window import TOTALS_STRIKE, aggregate
from oi_monitor.core.storage.series_store import SeriesStore
from oi_monitor.core.utils.logger import get_logger
from oi_monitor.errors import StoreError, UpstreamError

logger = get_logger(__name__)

CYCLE_LATENCY = Summary(
    "oi_ingestion_cycle_seconds", "Time spent on one ingestion cycle across symbols"
)
UPSTREAM_FAILURES = Counter(
    "oi_upstream_failures_total", "Option chain fetches that failed", ["symbol"]
)
STORE_FAILURES = Counter(
    "oi_store_failures_total", "Series appends that failed", ["symbol"]
)


@dataclass
class SymbolResult:
    symbol: str
    spot: Optional[float] = None
    atm_strike: Optional[float] = None
    stored: int = 0
    created: int = 0
    failed_strikes: List[int] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed_strikes


@dataclass
class CycleReport:
    results: List[SymbolResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and all(r.ok for r in self.results)


class OIIngestor:
    """fetch -> locate ATM -> aggregate window -> append series, per symbol"""

    def __init__(
        self,
        provider: OptionChainProvider,
        store: SeriesStore,
        max_concurrency: int = 3,
        clock: Callable[[], str] = to_trading_time,
    ):
        self.provider = provider
        self.store = store
        self.max_concurrency = max_concurrency
        self.clock = clock

    async def ingest_symbol(self, symbol: str) -> SymbolResult:
        result = SymbolResult(symbol=symbol)

        try:
            snapshot = await self.provider.fetch(symbol)
        except UpstreamError as e:
            UPSTREAM_FAILURES.labels(symbol=symbol).inc()
            logger.error(f"{symbol}: fetch failed, symbol skipped this cycle: {e}")
            result.error = str(e)
            return result

        chain = chain_to_frame(snapshot.rows)
        is_valid, error_msg = validate_chain_schema(chain)
        if not is_valid:
            logger.error(f"{symbol}: option chain schema check failed: {error_msg}")
            result.error = error_msg
            return result

        spot = snapshot.spot
        location = locate_atm(chain, spot)
        window = aggregate(location.chain, location.index, spot, self.clock())

        result.spot = spot
        result.atm_strike = location.strike

        if window.is_empty:
            logger.warning(f"{symbol}: no strike above spot {spot}, nothing stored")
            return result

        # sequential on purpose: one in-flight write per (symbol, strike)
        entries = window.records + [(TOTALS_STRIKE, window.totals)]
        for strike, entry in entries:
            try:
                created = await self.store.upsert_append(symbol, strike, entry)
            except StoreError as e:
                STORE_FAILURES.labels(symbol=symbol).inc()
                logger.error(f"{symbol}: strike {strike} skipped: {e}")
                result.failed_strikes.append(strike)
                continue

            result.stored += 1
            if created:
                result.created += 1

        logger.info(
            f"{symbol}: spot {spot}, ATM {location.strike}, "
            f"stored {result.stored}/{len(entries)} series "
            f"(puts COI {window.total_puts_change_oi}, calls COI {window.total_calls_change_oi})"
        )
        return result

    async def ingest(self, symbols: Iterable[str]) -> CycleReport:
        """One cycle across symbols, concurrently, joined before returning"""
        symbols = list(symbols)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(symbol):
            async with semaphore:
                return await self.ingest_symbol(symbol)

        report = CycleReport()
        with CYCLE_LATENCY.time():
            outcomes = await asyncio.gather(
                *(bounded(s) for s in symbols), return_exceptions=True
            )

        for symbol, outcome in zip(symbols, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(
                    f"{symbol}: unexpected ingestion failure: {outcome}",
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )
                report.results.append(SymbolResult(symbol=symbol, error=str(outcome)))
                report.errors.append(f"{symbol}: {outcome}")
                continue

            report.results.append(outcome)
            if outcome.error:
                report.errors.append(f"{symbol}: {outcome.error}")
            for strike in outcome.failed_strikes:
                report.errors.append(f"{symbol}: strike {strike} not stored")

        return report
