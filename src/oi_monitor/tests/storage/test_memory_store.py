# tests/storage/test_memory_store.py
import asyncio

from oi_monitor.core.data.schema import Snapshot
from oi_monitor.core.storage.series_store import MemorySeriesStore


def _snap(time, puts):
    return Snapshot(spot=19500.0, time=time, puts_coi=puts, calls_coi=1.0)


def test_second_append_extends_the_series_in_order():
    store = MemorySeriesStore()

    async def run():
        created_first = await store.upsert_append("NIFTY", 19500, _snap("09:20", 1.0))
        created_second = await store.upsert_append("NIFTY", 19500, _snap("09:23", 2.0))
        return created_first, created_second, await store.read_series("NIFTY", 19500)

    created_first, created_second, series = asyncio.run(run())

    assert created_first is True
    assert created_second is False
    assert [s.time for s in series] == ["09:20", "09:23"]
    assert [s.puts_coi for s in series] == [1.0, 2.0]


def test_series_are_symbol_scoped():
    store = MemorySeriesStore()

    async def run():
        await store.upsert_append("NIFTY", 0, _snap("09:20", 1.0))
        await store.upsert_append("BANKNIFTY", 0, _snap("09:20", 5.0))
        await store.upsert_append("NIFTY", 19500, _snap("09:20", 1.0))
        return (
            await store.list_series_strikes("NIFTY"),
            await store.read_series("BANKNIFTY", 0),
            await store.read_series("FINNIFTY", 0),
        )

    nifty_strikes, bank_totals, fin_totals = asyncio.run(run())

    assert nifty_strikes == [0, 19500]
    assert [s.puts_coi for s in bank_totals] == [5.0]
    assert fin_totals is None


def test_reset_is_idempotent_and_leaves_other_symbols():
    store = MemorySeriesStore()

    async def run():
        await store.upsert_append("NIFTY", 0, _snap("09:20", 1.0))
        await store.upsert_append("NIFTY", 19500, _snap("09:20", 1.0))
        await store.upsert_append("BANKNIFTY", 0, _snap("09:20", 1.0))
        first = await store.reset(["NIFTY", "FINNIFTY"])
        second = await store.reset(["NIFTY", "FINNIFTY"])
        return first, second, await store.read_series("NIFTY", 0), await store.read_series("BANKNIFTY", 0)

    first, second, nifty, bank = asyncio.run(run())

    assert first == 2
    assert second == 0
    assert nifty is None
    assert bank is not None


def test_reset_on_empty_store():
    assert asyncio.run(MemorySeriesStore().reset(["NIFTY"])) == 0
