"""
Append-only OI change series keyed by (symbol, strike).

Strike 0 holds the inner-window totals of each ingestion cycle.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from oi_monitor.core.data.schema import Snapshot
from oi_monitor.core.utils.logger import get_logger

logger = get_logger(__name__)


class SeriesStore(ABC):
    @abstractmethod
    async def upsert_append(self, symbol: str, strike: int, snapshot: Snapshot) -> bool:
        """
        Append snapshot to the (symbol, strike) series, creating it when absent.

        Returns:
            True when the series was created by this call

        Raises:
            StoreError: the backing store failed
        """

    @abstractmethod
    async def read_series(self, symbol: str, strike: int) -> Optional[List[Snapshot]]:
        """Series in insertion order, None when it does not exist"""

    @abstractmethod
    async def list_series_strikes(self, symbol: str) -> List[int]:
        """Strikes with a stored series for symbol, ascending"""

    @abstractmethod
    async def reset(self, symbols: Iterable[str]) -> int:
        """
        Delete every series of the given symbols. Safe to repeat.

        Returns:
            number of series removed
        """

    async def close(self) -> None:
        pass


class MemorySeriesStore(SeriesStore):
    """In-process store for dry runs and tests"""

    def __init__(self):
        self._series: Dict[Tuple[str, int], List[Snapshot]] = {}

    async def upsert_append(self, symbol: str, strike: int, snapshot: Snapshot) -> bool:
        key = (symbol, strike)
        doc = self._series.get(key)

        if doc is None:
            self._series[key] = [snapshot]
            return True

        doc.append(snapshot)
        return False

    async def read_series(self, symbol: str, strike: int) -> Optional[List[Snapshot]]:
        doc = self._series.get((symbol, strike))
        return list(doc) if doc is not None else None

    async def list_series_strikes(self, symbol: str) -> List[int]:
        return sorted(strike for sym, strike in self._series if sym == symbol)

    async def reset(self, symbols: Iterable[str]) -> int:
        targets = set(symbols)
        keys = [key for key in self._series if key[0] in targets]
        for key in keys:
            del self._series[key]

        logger.info(f"Memory store reset for {sorted(targets)}: {len(keys)} series removed")
        return len(keys)
