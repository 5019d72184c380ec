from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from oi_monitor.config import RESET_TIME, SESSION_CLOSE, SESSION_OPEN, TRADING_TIMEZONE
from oi_monitor.core.scheduler.market_calendar import MarketCalendar
from oi_monitor.core.scheduler.polling import PollingController
from oi_monitor.core.utils.logger import get_logger

logger = get_logger(__name__)


class DailyScheduler:
    """
    Calendar triggers around the polling controller

    jobs (weekdays, trading timezone):
        RESET_TIME     wipe the series store before the session
        SESSION_OPEN   start polling
        SESSION_CLOSE  stop polling
    every job is a no-op on holidays
    """

    def __init__(
        self,
        controller: PollingController,
        reset_store: Callable[[], Awaitable],
        calendar: MarketCalendar,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.controller = controller
        self.reset_store = reset_store
        self.calendar = calendar
        self.scheduler = scheduler or AsyncIOScheduler(timezone=TRADING_TIMEZONE)
        self._configured = False

    def _add_jobs(self):
        jobs = [
            ("oi_reset_store", self.on_reset, RESET_TIME),
            ("oi_session_open", self.on_session_open, SESSION_OPEN),
            ("oi_session_close", self.on_session_close, SESSION_CLOSE),
        ]
        for job_id, func, (hour, minute) in jobs:
            self.scheduler.add_job(
                func,
                trigger=CronTrigger(
                    day_of_week="mon-fri",
                    hour=hour,
                    minute=minute,
                    timezone=TRADING_TIMEZONE,
                ),
                id=job_id,
                name=job_id,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
        self._configured = True

    def start(self):
        """Register the jobs and start; polling starts at once when launched mid-session"""
        if not self._configured:
            self._add_jobs()
        self.scheduler.start()
        logger.info("Daily scheduler started")

        if self.calendar.is_session_open():
            logger.info("Launched inside the trading session, starting polling now")
            self.controller.start()

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.controller.stop()
        logger.info("Daily scheduler stopped")

    async def on_reset(self):
        if not self.calendar.is_trading_day():
            logger.info("Trading holiday, previous session data kept")
            return False
        await self.reset_store()
        return True

    async def on_session_open(self):
        if not self.calendar.is_trading_day():
            logger.info("Trading holiday, polling not started")
            return False
        return self.controller.start()

    async def on_session_close(self):
        if not self.calendar.is_trading_day():
            logger.info("Trading holiday, nothing to stop")
            return False
        return self.controller.stop()
