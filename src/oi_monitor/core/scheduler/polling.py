import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from oi_monitor.core.utils.logger import get_logger

logger = get_logger(__name__)


class PollingState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PollingController:
    """
    Repeating ingestion timer with an explicit STOPPED/RUNNING lifecycle.

    One instance per process. Each tick launches one cycle unless the previous
    cycle is still in flight, in which case the tick is skipped. stop() cancels
    the timer only, an in-flight cycle runs to completion.
    """

    def __init__(self, cycle: Callable[[], Awaitable], interval: float):
        if interval <= 0:
            raise ValueError("polling interval must be positive")
        self.cycle = cycle
        self.interval = interval
        self.state = PollingState.STOPPED
        self.cycles_started = 0
        self.ticks_skipped = 0
        self._timer: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state is PollingState.RUNNING

    @property
    def cycle_in_flight(self) -> bool:
        return self._cycle_task is not None and not self._cycle_task.done()

    def start(self) -> bool:
        """Start the timer, must be called from the event loop. False if already running."""
        if self.state is PollingState.RUNNING:
            logger.info("Polling already running, start ignored")
            return False

        self._timer = asyncio.get_running_loop().create_task(
            self._run_timer(), name="oi-polling-timer"
        )
        self.state = PollingState.RUNNING
        logger.info(f"Polling started, every {self.interval}s")
        return True

    def stop(self) -> bool:
        """Cancel the timer. False if already stopped."""
        if self.state is PollingState.STOPPED:
            logger.info("Polling already stopped, stop ignored")
            return False

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.state = PollingState.STOPPED

        if self.cycle_in_flight:
            logger.info("Polling stopped, in-flight cycle left to complete")
        else:
            logger.info("Polling stopped")
        return True

    async def wait_idle(self) -> None:
        """Wait for the in-flight cycle, if any"""
        task = self._cycle_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _run_timer(self):
        while True:
            self._tick()
            await asyncio.sleep(self.interval)

    def _tick(self):
        if self.cycle_in_flight:
            self.ticks_skipped += 1
            logger.warning("Previous ingestion cycle still running, tick skipped")
            return

        self.cycles_started += 1
        self._cycle_task = asyncio.get_running_loop().create_task(
            self.cycle(), name=f"oi-cycle-{self.cycles_started}"
        )
        self._cycle_task.add_done_callback(self._on_cycle_done)

    @staticmethod
    def _on_cycle_done(task: asyncio.Task):
        if task.cancelled():
            logger.warning(f"{task.get_name()} was cancelled")
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                f"{task.get_name()} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )
