# tests/engine/test_strikes.py
import polars as pl
import pytest

from oi_monitor.core.data.transforms import chain_to_frame
from oi_monitor.core.engine.strikes import strike_increment, strike_list


def test_strike_list_rounds_spot_up_to_the_increment(make_snapshot):
    strikes = [19000.0 + 50 * i for i in range(60)]
    chain = chain_to_frame(make_snapshot("NIFTY", strikes, 19812.3).rows)

    result = strike_list(chain, 19812.3)

    assert strike_increment(chain) == 50.0
    assert result == [19600, 19650, 19700, 19750, 19800, 19850, 19900, 19950, 20000, 20050, 20100]


def test_increment_ignores_irregular_rows_before_the_reference(make_snapshot):
    near = [44000.0, 44010.0, 44020.0]
    regular = [44100.0 + 100 * i for i in range(30)]
    chain = chain_to_frame(make_snapshot("BANKNIFTY", near + regular, 45320.0).rows)

    assert strike_increment(chain) == 100.0
    result = strike_list(chain, 45320.0)
    assert result[5] == 45400
    assert result == sorted(result)


def test_short_chain_is_rejected(make_snapshot):
    chain = chain_to_frame(make_snapshot("NIFTY", [100.0 + 50 * i for i in range(21)], 600.0).rows)

    with pytest.raises(ValueError):
        strike_list(chain, 600.0)


def test_fractional_increment_is_rejected():
    chain = pl.DataFrame({"strike_price": [100.0 + 12.5 * i for i in range(30)]})

    with pytest.raises(ValueError, match="whole number"):
        strike_list(chain, 300.0)
