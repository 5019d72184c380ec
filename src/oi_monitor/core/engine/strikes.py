import math
from typing import List

import polars as pl

from oi_monitor.core.engine.atm import sort_chain

# rows near ATM can carry irregular spacing, the increment is measured from this row on
REFERENCE_ROW = 20
STRIKES_EACH_SIDE = 5


def strike_increment(chain: pl.DataFrame) -> float:
    """
    Smallest gap between the reference row and every row after it.

    Raises:
        ValueError: not enough rows, or the gap is zero or fractional
    """
    strikes = sort_chain(chain)["strike_price"].to_list()
    if len(strikes) <= REFERENCE_ROW + 1:
        raise ValueError(
            f"need more than {REFERENCE_ROW + 1} strikes to derive an increment, got {len(strikes)}"
        )

    reference = strikes[REFERENCE_ROW]
    increment = min(abs(reference - s) for s in strikes[REFERENCE_ROW + 1 :])
    if increment <= 0:
        raise ValueError("strike increment resolved to zero")
    if increment != int(increment):
        raise ValueError(f"strike increment {increment} is not a whole number")

    return increment


def strike_list(chain: pl.DataFrame, spot: float) -> List[int]:
    """ATM-aligned strike (spot rounded up to the increment) +/- 5 increments, ascending"""
    increment = strike_increment(chain)
    atm = math.ceil(spot / increment) * increment

    strikes = [atm + i * increment for i in range(-STRIKES_EACH_SIDE, STRIKES_EACH_SIDE + 1)]
    return sorted(int(round(s)) for s in strikes)
