"""
Exception hierarchy for the OI change monitor

Ingestion code catches these at the narrowest scope (one strike, one symbol),
read code lets them reach the caller.
"""


class OIMonitorError(Exception):
    """Base class for every error raised by oi_monitor"""


class ConfigurationError(OIMonitorError):
    """Required configuration is missing or invalid, fatal at startup"""


class UpstreamError(OIMonitorError):
    """Option chain provider failed: network, HTTP status or malformed payload"""

    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")


class StoreError(OIMonitorError):
    """Read or write against the series store failed"""


class DivisionUndefined(OIMonitorError):
    """Ratio asked for with a zero denominator"""


class NoDataError(OIMonitorError):
    """No stored series for the requested (symbol, strike)"""

    def __init__(self, symbol: str, strike: int, message: str):
        self.symbol = symbol
        self.strike = strike
        super().__init__(message)


class SeriesNotFoundError(NoDataError):
    """Series missing during trading hours"""


class MarketClosedError(NoDataError):
    """Series missing because the session has not produced data yet"""
