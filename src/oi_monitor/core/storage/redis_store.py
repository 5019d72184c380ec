from typing import Iterable, List, Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from oi_monitor.core.data.schema import Snapshot
from oi_monitor.core.storage.series_store import SeriesStore
from oi_monitor.core.utils.logger import get_logger
from oi_monitor.errors import StoreError

logger = get_logger(__name__)


class RedisSeriesStore(SeriesStore):
    """
    Series store on Redis

    layout:
        oi:{symbol}:{strike}   list of Snapshot JSON, RPUSH order
        oi:{symbol}:strikes    set of strikes stored for the symbol
    """

    KEY_PREFIX = "oi"

    def __init__(self, redis_url: str = None, client: redis.Redis = None):
        if client is None:
            client = redis.from_url(redis_url, decode_responses=True)
        self.redis_client = client

    def series_key(self, symbol: str, strike: int) -> str:
        return f"{self.KEY_PREFIX}:{symbol}:{strike}"

    def index_key(self, symbol: str) -> str:
        return f"{self.KEY_PREFIX}:{symbol}:strikes"

    async def upsert_append(self, symbol: str, strike: int, snapshot: Snapshot) -> bool:
        key = self.series_key(symbol, strike)
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, snapshot.to_json())
                pipe.sadd(self.index_key(symbol), strike)
                length, _ = await pipe.execute()
        except RedisError as e:
            raise StoreError(f"append to {key} failed: {e}") from e

        # RPUSH on a missing key creates a single-element list
        return length == 1

    async def read_series(self, symbol: str, strike: int) -> Optional[List[Snapshot]]:
        key = self.series_key(symbol, strike)
        try:
            raw = await self.redis_client.lrange(key, 0, -1)
        except RedisError as e:
            raise StoreError(f"read of {key} failed: {e}") from e

        if not raw:
            return None

        try:
            return [Snapshot.from_json(item) for item in raw]
        except ValidationError as e:
            raise StoreError(f"corrupt snapshot in {key}: {e}") from e

    async def list_series_strikes(self, symbol: str) -> List[int]:
        try:
            members = await self.redis_client.smembers(self.index_key(symbol))
        except RedisError as e:
            raise StoreError(f"strike index read for {symbol} failed: {e}") from e

        return sorted(int(m) for m in members)

    async def _reset_symbol(self, symbol: str) -> int:
        index = self.index_key(symbol)
        async with self.redis_client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    # an append between SMEMBERS and DEL touches the index and aborts EXEC
                    await pipe.watch(index)
                    members = await pipe.smembers(index)
                    keys = [self.series_key(symbol, s) for s in sorted(int(m) for m in members)]
                    pipe.multi()
                    pipe.delete(*keys, index)
                    await pipe.execute()
                    return len(keys)
                except WatchError:
                    logger.debug(f"Strike index of {symbol} changed during reset, retrying")

    async def reset(self, symbols: Iterable[str]) -> int:
        removed = 0
        for symbol in symbols:
            try:
                count = await self._reset_symbol(symbol)
            except RedisError as e:
                raise StoreError(f"reset of {symbol} failed: {e}") from e

            removed += count
            logger.info(f"Redis store reset for {symbol}: {count} series removed")

        return removed

    async def ping(self) -> bool:
        try:
            return await self.redis_client.ping()
        except RedisError as e:
            raise StoreError(f"redis ping failed: {e}") from e

    async def close(self) -> None:
        await self.redis_client.aclose()
