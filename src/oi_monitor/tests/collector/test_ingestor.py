# tests/collector/test_ingestor.py
import asyncio

from oi_monitor.core.collector.ingestor import OIIngestor
from oi_monitor.core.storage.series_store import MemorySeriesStore
from oi_monitor.errors import StoreError, UpstreamError

SPACED_50 = [50.0 * (i + 1) for i in range(45)]
CENTERED = [1000.0 + 50 * i for i in range(45)]


def _ingestor(provider, store, now="10:05"):
    return OIIngestor(provider, store, max_concurrency=3, clock=lambda: now)


def test_end_to_end_totals_match_the_inner_window(make_snapshot, fake_provider):
    # spot 100 with strikes 50..2250: ATM is 150 at index 2
    provider = fake_provider({"NIFTY": make_snapshot("NIFTY", SPACED_50, 100.0)})
    store = MemorySeriesStore()

    report = asyncio.run(_ingestor(provider, store).ingest(["NIFTY"]))
    totals = asyncio.run(store.read_series("NIFTY", 0))

    result = report.results[0]
    assert report.ok
    assert result.atm_strike == 150.0
    # outer window indices 0..22 plus the totals record
    assert result.stored == 24
    latest = totals[-1]
    inner = range(0, 13)
    assert latest.puts_coi == sum(500.0 * (i + 1) for i in inner)
    assert latest.calls_coi == sum(1000.0 * (i + 1) for i in inner)
    assert latest.time == "10:05"
    assert latest.spot == 100.0


def test_each_cycle_appends_one_snapshot_per_strike(make_snapshot, fake_provider):
    provider = fake_provider({"NIFTY": make_snapshot("NIFTY", CENTERED, 2075.0)})
    store = MemorySeriesStore()

    async def run():
        await _ingestor(provider, store, "09:20").ingest(["NIFTY"])
        await _ingestor(provider, store, "09:23").ingest(["NIFTY"])
        return await store.list_series_strikes("NIFTY"), await store.read_series("NIFTY", 2100)

    strikes, series = asyncio.run(run())

    assert len(strikes) == 42
    assert [s.time for s in series] == ["09:20", "09:23"]


def test_one_symbol_failing_does_not_block_the_others(make_snapshot, fake_provider):
    provider = fake_provider(
        {
            "NIFTY": make_snapshot("NIFTY", CENTERED, 2075.0),
            "BANKNIFTY": UpstreamError("BANKNIFTY", "request failed: 502"),
            "FINNIFTY": make_snapshot("FINNIFTY", CENTERED, 2075.0),
        }
    )
    store = MemorySeriesStore()

    report = asyncio.run(_ingestor(provider, store).ingest(["NIFTY", "BANKNIFTY", "FINNIFTY"]))

    by_symbol = {r.symbol: r for r in report.results}
    assert not report.ok
    assert by_symbol["NIFTY"].stored == 42
    assert by_symbol["FINNIFTY"].stored == 42
    assert "502" in by_symbol["BANKNIFTY"].error
    assert asyncio.run(store.read_series("BANKNIFTY", 0)) is None


def test_store_failure_skips_only_that_strike(make_snapshot, fake_provider):
    class FlakyStore(MemorySeriesStore):
        async def upsert_append(self, symbol, strike, snapshot):
            if strike == 2100:
                raise StoreError("write timeout")
            return await super().upsert_append(symbol, strike, snapshot)

    provider = fake_provider({"NIFTY": make_snapshot("NIFTY", CENTERED, 2075.0)})
    store = FlakyStore()

    report = asyncio.run(_ingestor(provider, store).ingest(["NIFTY"]))

    result = report.results[0]
    assert result.failed_strikes == [2100]
    assert result.stored == 41
    assert asyncio.run(store.read_series("NIFTY", 0)) is not None
    assert report.errors == ["NIFTY: strike 2100 not stored"]


def test_spot_above_every_strike_stores_nothing(make_snapshot, fake_provider):
    provider = fake_provider({"NIFTY": make_snapshot("NIFTY", CENTERED, 9999.0)})
    store = MemorySeriesStore()

    report = asyncio.run(_ingestor(provider, store).ingest(["NIFTY"]))

    assert report.results[0].stored == 0
    assert asyncio.run(store.list_series_strikes("NIFTY")) == []


def test_unexpected_error_is_collected(fake_provider):
    provider = fake_provider({"NIFTY": RuntimeError("bug")})

    report = asyncio.run(_ingestor(provider, MemorySeriesStore()).ingest(["NIFTY"]))

    assert report.errors == ["NIFTY: bug"]
    assert report.results[0].error == "bug"


def test_one_snapshot_per_strike_per_cycle_with_fractional_rows(make_snapshot, fake_provider):
    strikes = [50.0 * i for i in range(1, 30)] + [499.6, 500.4]
    provider = fake_provider({"NIFTY": make_snapshot("NIFTY", strikes, 480.0)})
    store = MemorySeriesStore()

    asyncio.run(_ingestor(provider, store).ingest(["NIFTY"]))

    assert len(asyncio.run(store.read_series("NIFTY", 500))) == 1
