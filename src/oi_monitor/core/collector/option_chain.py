import asyncio
from typing import Optional

import httpx

from oi_monitor.config import DEFAULT_API_URL
from oi_monitor.core.data.schema import RawChainSnapshot
from oi_monitor.core.utils.logger import get_logger
from oi_monitor.errors import UpstreamError

logger = get_logger(__name__)


class OptionChainProvider:
    """
    Option chain snapshots from the niftytrader web api

    GET {url}?symbol=NIFTY[&expiryDate=...] -> resultData.opDatas / opExpiryDates
    """

    URL = DEFAULT_API_URL
    RETRIES = 2
    TIMEOUT = 10.0

    def __init__(
        self,
        url: str = None,
        timeout: float = None,
        retries: int = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.url = url or self.URL
        self.retries = self.RETRIES if retries is None else retries
        self.client = httpx.AsyncClient(
            timeout=self.TIMEOUT if timeout is None else timeout,
            transport=transport,
            headers={"accept": "application/json"},
        )

    async def fetch(self, symbol: str, expiry: Optional[str] = None) -> RawChainSnapshot:
        """
        Fetch one option chain snapshot

        Args:
            symbol: index symbol, e.g. NIFTY
            expiry: expiry label, None for the current cycle

        Raises:
            UpstreamError: network failure, timeout, non-2xx or malformed payload
        """
        params = {"symbol": symbol}
        if expiry:
            params["expiryDate"] = expiry

        resp = None
        for attempt in range(self.retries + 1):
            try:
                resp = await self.client.get(self.url, params=params)
                resp.raise_for_status()
                break
            except httpx.HTTPError as e:
                if attempt < self.retries:
                    logger.warning(
                        f"{symbol}: option chain request failed ({e}), retry {attempt + 1}/{self.retries}"
                    )
                    await asyncio.sleep(0.5 * (attempt + 1))
                else:
                    raise UpstreamError(symbol, f"request failed: {e}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamError(symbol, f"response is not JSON: {e}") from e

        try:
            snapshot = RawChainSnapshot.from_api_response(symbol, payload)
        except (ValueError, TypeError) as e:
            raise UpstreamError(symbol, f"malformed payload: {e}") from e

        logger.debug(f"{symbol}: fetched {len(snapshot.rows)} rows, spot {snapshot.spot}")
        return snapshot

    async def aclose(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
