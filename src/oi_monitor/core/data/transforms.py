from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

import polars as pl

from oi_monitor.config import LAKH, TRADING_TIMEZONE
from oi_monitor.core.data.schema import CHAIN_SCHEMA, RawOptionRow


def trading_now() -> datetime:
    return datetime.now(ZoneInfo(TRADING_TIMEZONE))


def to_trading_time(value: Optional[datetime] = None) -> str:
    """
    Format a datetime as HH:MM in the trading timezone.
    Naive datetimes are taken to be trading-timezone wall clock already.
    """
    if value is None:
        value = trading_now()
    elif value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(TRADING_TIMEZONE))

    return value.strftime("%H:%M")


def to_lakhs(value: float) -> float:
    return round(value / LAKH, 2)


def chain_to_frame(rows: List[RawOptionRow]) -> pl.DataFrame:
    """
    Load validated option rows into a polars frame.
    Non-positive strikes are dropped, strike 0 is the totals key of the series store.
    Fractional strikes are dropped too, series are keyed by integer strike.
    """
    df = pl.DataFrame(
        [row.model_dump() for row in rows],
        schema=CHAIN_SCHEMA,
    )
    return df.filter(
        (pl.col("strike_price") > 0)
        & (pl.col("strike_price") == pl.col("strike_price").floor())
    )
