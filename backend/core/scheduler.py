"""Scheduler manager — APScheduler integration for periodic poll cycles."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from models.poll import PollResult
from services.poller import PollerService

logger = logging.getLogger(__name__)

POLL_JOB_ID = "poll"


class SchedulerManager:
    def __init__(self, poller: PollerService, interval_minutes: int = 0):
        self.poller = poller
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler()
        self._started = False

    async def start(self):
        """Start the scheduler; the poll job is only added for a positive interval."""
        if self.interval_minutes > 0:
            self.scheduler.add_job(
                self._run_poll,
                trigger=IntervalTrigger(minutes=self.interval_minutes),
                id=POLL_JOB_ID,
                name="Watchlist Poll",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=120,
            )
            logger.info("Scheduled poll every %d minutes", self.interval_minutes)
        else:
            logger.info("Scheduled poll disabled; scans run on demand only")

        self.scheduler.start()
        self._started = True
        logger.info("Scheduler started")

    async def shutdown(self):
        """Shut down the scheduler."""
        if self._started:
            self.scheduler.shutdown(wait=False)
            self._started = False
            logger.info("Scheduler shut down")

    async def run_poll_now(self) -> PollResult:
        """Trigger an immediate poll cycle."""
        return await self._run_poll()

    def get_status(self) -> dict:
        """Get scheduler status, job info and the last poll report."""
        jobs = []
        if self._started:
            for job in self.scheduler.get_jobs():
                jobs.append({
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                })

        return {
            "running": self._started,
            "interval_minutes": self.interval_minutes,
            "jobs": jobs,
            "last_run_utc": (
                self.poller.last_run_utc.isoformat()
                if self.poller.last_run_utc
                else None
            ),
            "last_run_stats": self.poller.last_run_stats,
            "is_polling": self.poller.is_running,
        }

    async def _run_poll(self) -> PollResult:
        logger.info("Starting poll run")
        return await self.poller.run()
