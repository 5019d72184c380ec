from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import polars as pl

from oi_monitor.core.data.schema import LiveStrike, Snapshot
from oi_monitor.core.data.transforms import to_lakhs
from oi_monitor.core.engine.atm import locate_atm_inclusive

# strikes stored on each side of ATM
OUTER_WINDOW = 20
# strikes on each side of ATM that feed the totals record
INNER_WINDOW = 10
# strikes on each side of ATM in the live view
LIVE_WINDOW = 10

TOTALS_STRIKE = 0


@dataclass
class WindowAggregation:
    records: List[Tuple[int, Snapshot]] = field(default_factory=list)
    totals: Optional[Snapshot] = None
    total_puts_change_oi: float = 0.0
    total_calls_change_oi: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.records


def outer_bounds(atm_index: int, length: int) -> Tuple[int, int]:
    """Inclusive [start, end] of the storage window, start > end means empty"""
    if atm_index < 0 or length == 0:
        return 0, -1
    return max(0, atm_index - OUTER_WINDOW), min(length - 1, atm_index + OUTER_WINDOW)


def aggregate(chain: pl.DataFrame, atm_index: int, spot: float, now: str) -> WindowAggregation:
    """
    Select the storage window around ATM and sum the inner window.

    Args:
        chain: option chain sorted ascending by strike_price (see locate_atm)
        atm_index: storage ATM index, -1 yields an empty aggregation
        spot: index level at fetch time
        now: HH:MM stamped on every snapshot of this cycle

    Returns:
        WindowAggregation with one (strike, Snapshot) per outer-window row and
        the totals Snapshot keyed at strike 0
    """
    start, end = outer_bounds(atm_index, chain.height)
    if start > end:
        return WindowAggregation()

    window = (
        chain.with_row_index("idx")
        .slice(start, end - start + 1)
        .with_columns(
            ((pl.col("idx").cast(pl.Int64) - atm_index).abs() <= INNER_WINDOW).alias(
                "inner"
            )
        )
    )

    records = [
        (
            int(round(row["strike_price"])),
            Snapshot(
                spot=spot,
                time=now,
                puts_coi=row["puts_change_oi"],
                calls_coi=row["calls_change_oi"],
            ),
        )
        for row in window.iter_rows(named=True)
    ]

    inner = window.filter(pl.col("inner"))
    total_puts = float(inner["puts_change_oi"].sum())
    total_calls = float(inner["calls_change_oi"].sum())

    totals = Snapshot(spot=spot, time=now, puts_coi=total_puts, calls_coi=total_calls)

    return WindowAggregation(
        records=records,
        totals=totals,
        total_puts_change_oi=total_puts,
        total_calls_change_oi=total_calls,
    )


def live_view(chain: pl.DataFrame, spot: float) -> List[LiveStrike]:
    """
    Stateless display window: ATM by the inclusive rule, 10 strikes each side,
    OI figures rescaled to lakhs. Empty when no strike reaches spot.
    """
    location = locate_atm_inclusive(chain, spot)
    if location.index < 0:
        return []

    start = max(0, location.index - LIVE_WINDOW)
    stop = min(location.chain.height, location.index + LIVE_WINDOW + 1)

    return [
        LiveStrike(
            atm=location.strike,
            strike_price=row["strike_price"],
            calls_oi=to_lakhs(row["calls_oi"]),
            calls_coi=to_lakhs(row["calls_change_oi"]),
            puts_oi=to_lakhs(row["puts_oi"]),
            puts_coi=to_lakhs(row["puts_change_oi"]),
        )
        for row in location.chain.slice(start, stop - start).iter_rows(named=True)
    ]
