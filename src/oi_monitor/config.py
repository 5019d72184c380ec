import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from oi_monitor.errors import ConfigurationError

load_dotenv()

DEFAULT_API_URL = "https://webapi.niftytrader.in/webapi/option/fatch-option-chain"
DEFAULT_SYMBOLS = ["NIFTY", "BANKNIFTY", "FINNIFTY"]

# dd-MM-yyyy, official exchange holidays
DEFAULT_HOLIDAYS = ["02-10-2023", "14-11-2023", "27-11-2023", "25-12-2023"]

TRADING_TIMEZONE = "Asia/Kolkata"

# session band, inclusive on both ends
SESSION_OPEN = (9, 20)
SESSION_CLOSE = (15, 30)
# store wipe before the next session opens
RESET_TIME = (9, 10)

LAKH = 100_000


@dataclass
class Settings:
    api_url: str = DEFAULT_API_URL
    redis_url: Optional[str] = None
    symbols: List[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    holidays: List[str] = field(default_factory=lambda: list(DEFAULT_HOLIDAYS))
    poll_interval: float = 180.0
    http_timeout: float = 10.0
    http_retries: int = 2
    max_concurrency: int = 3

    def require_redis_url(self) -> str:
        if not self.redis_url:
            raise ConfigurationError(
                "OI_REDIS_URL is not set, it is required for the redis series store"
            )
        return self.redis_url


def _split_list(value: Optional[str], default: List[str]) -> List[str]:
    if value is None or not value.strip():
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings() -> Settings:
    """
    Build Settings from the environment (.env is loaded on import)

    Raises:
        ConfigurationError: a numeric variable cannot be parsed
    """
    settings = Settings(
        api_url=os.getenv("OI_API_URL", DEFAULT_API_URL),
        redis_url=os.getenv("OI_REDIS_URL"),
        symbols=[s.upper() for s in _split_list(os.getenv("OI_SYMBOLS"), DEFAULT_SYMBOLS)],
        holidays=_split_list(os.getenv("OI_HOLIDAYS"), DEFAULT_HOLIDAYS),
        poll_interval=_get_number("OI_POLL_INTERVAL", 180.0, float),
        http_timeout=_get_number("OI_HTTP_TIMEOUT", 10.0, float),
        http_retries=_get_number("OI_HTTP_RETRIES", 2, int),
        max_concurrency=_get_number("OI_MAX_CONCURRENCY", 3, int),
    )

    if settings.poll_interval == 0:
        raise ConfigurationError("OI_POLL_INTERVAL must be greater than zero")
    if settings.max_concurrency == 0:
        raise ConfigurationError("OI_MAX_CONCURRENCY must be greater than zero")
    if not settings.symbols:
        raise ConfigurationError("OI_SYMBOLS resolved to an empty list")

    return settings
