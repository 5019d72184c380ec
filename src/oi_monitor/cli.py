"""
OI Change Monitor command line
Daemon mode runs the daily scheduler and polling loop, the other commands are
one-shot administrative triggers.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys

from prometheus_client import start_http_server

from oi_monitor.config import load_settings
from oi_monitor.core.api.service import OIMonitorService, build_service
from oi_monitor.core.utils.logger import setup_logger
from oi_monitor.errors import ConfigurationError, OIMonitorError


def _dump(items):
    data = [i.model_dump(by_alias=True) if hasattr(i, "model_dump") else i for i in items]
    print(json.dumps(data, indent=2, default=str))


async def run_daemon(service: OIMonitorService):
    logger = logging.getLogger("oi_monitor.cli")
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # windows event loops
            pass

    scheduler = service.daily_scheduler()
    scheduler.start()
    logger.info(f"Tracking {service.settings.symbols}, poll every {service.settings.poll_interval}s")

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        scheduler.shutdown()
        await service.close()


async def run_command(args, service: OIMonitorService):
    try:
        if args.command == "run":
            await run_daemon(service)
            return 0

        if args.command == "ingest":
            report = await service.ingest(args.symbols or None)
            if report is None:
                print("Trading Holiday, ingestion skipped")
                return 0
            for result in report.results:
                print(
                    f"{result.symbol}: spot={result.spot} atm={result.atm_strike} "
                    f"stored={result.stored} error={result.error}"
                )
            return 0 if report.ok else 1

        if args.command == "reset":
            done = await service.reset_store(args.symbols or None, force=args.force)
            print("db is initialized" if done else "Trading Holiday, so don't drop previous day data")
            return 0

        if args.command == "totals":
            _dump(await service.read_totals(args.symbol))
        elif args.command == "strike":
            _dump(await service.read_strike(args.symbol, args.strike))
        elif args.command == "strikes":
            _dump(await service.list_strikes(args.symbol))
        elif args.command == "expiries":
            _dump(await service.list_expiries(args.symbol))
        elif args.command == "live":
            _dump(await service.live_chain(args.symbol, args.expiry))
        return 0
    finally:
        if args.command != "run":
            await service.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oi-monitor",
        description="Option chain OI change monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the daily scheduler (reset 09:10, poll 09:20-15:30 IST)
  oi-monitor run --metrics-port 9090

  # One ingestion cycle into an in-process store
  oi-monitor --memory ingest NIFTY

  # Read the totals series
  oi-monitor totals BANKNIFTY
        """,
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use the in-process series store instead of redis",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", action="store_true", help="Also log to a dated file")

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Daily scheduler and polling loop")
    run.add_argument("--metrics-port", type=int, help="Expose prometheus metrics on this port")

    ingest = sub.add_parser("ingest", help="Run one ingestion cycle")
    ingest.add_argument("symbols", nargs="*", help="Symbols (default: OI_SYMBOLS)")

    reset = sub.add_parser("reset", help="Delete stored series")
    reset.add_argument("symbols", nargs="*", help="Symbols (default: OI_SYMBOLS)")
    reset.add_argument("--force", action="store_true", help="Reset on a holiday as well")

    totals = sub.add_parser("totals", help="Totals series with PCR and OI diff")
    totals.add_argument("symbol")

    strike = sub.add_parser("strike", help="OI diff series of one strike")
    strike.add_argument("symbol")
    strike.add_argument("strike", type=int)

    strikes = sub.add_parser("strikes", help="ATM +/- 5 strike list")
    strikes.add_argument("symbol")

    expiries = sub.add_parser("expiries", help="Expiry labels")
    expiries.add_argument("symbol")

    live = sub.add_parser("live", help="Live ATM +/- 10 chain in lakhs")
    live.add_argument("symbol")
    live.add_argument("expiry", nargs="?", help="Expiry label (default: current)")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger = setup_logger(
        "oi_monitor",
        level=logging.DEBUG if args.debug else logging.INFO,
        log_to_file=args.log_file,
    )

    try:
        settings = load_settings()
        service = build_service(settings, memory=args.memory)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    if args.command == "run" and args.metrics_port:
        start_http_server(args.metrics_port)
        logger.info(f"Metrics on localhost:{args.metrics_port}/metrics")

    try:
        return asyncio.run(run_command(args, service))
    except OIMonitorError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
