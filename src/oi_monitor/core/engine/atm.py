"""
ATM localization on an option chain frame.

Two boundary rules are in use and must stay separate:
    storage aggregation -> first strike strictly above spot
    live display        -> first strike with strike - spot >= 0
"""

from dataclasses import dataclass
from typing import Optional

import polars as pl


@dataclass
class AtmLocation:
    index: int  # -1 when no strike qualifies
    strike: Optional[float]
    chain: pl.DataFrame  # sorted ascending by strike_price


def sort_chain(chain: pl.DataFrame) -> pl.DataFrame:
    """Stable ascending numeric sort, one row per strike (first occurrence wins)"""
    return chain.unique(
        subset="strike_price", keep="first", maintain_order=True
    ).sort("strike_price", maintain_order=True)


def _first_match(chain: pl.DataFrame, predicate: pl.Expr) -> AtmLocation:
    matches = chain.with_row_index("idx").filter(predicate)
    if matches.is_empty():
        return AtmLocation(index=-1, strike=None, chain=chain)

    first = matches.row(0, named=True)
    return AtmLocation(index=int(first["idx"]), strike=first["strike_price"], chain=chain)


def locate_atm(chain: pl.DataFrame, spot: float) -> AtmLocation:
    """ATM for storage aggregation: first strike > spot"""
    chain = sort_chain(chain)
    return _first_match(chain, pl.col("strike_price") > spot)


def locate_atm_inclusive(chain: pl.DataFrame, spot: float) -> AtmLocation:
    """ATM for the live view: first strike with strike - spot >= 0"""
    chain = sort_chain(chain)
    return _first_match(chain, (pl.col("strike_price") - spot) >= 0)
