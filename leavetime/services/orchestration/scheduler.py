import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from leavetime.services.orchestration.sync_service import FlightSyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "flight_sync_job"


class FlightSyncScheduler:
    """
    Runs the flight sync on a fixed interval using APScheduler.
    """

    def __init__(self, sync_service: FlightSyncService, interval_minutes: int = 15):
        self.sync_service = sync_service
        self.scheduler = AsyncIOScheduler()
        self.interval_minutes = interval_minutes
        self._job = None
        self._is_running = False
        self.last_stats: Optional[dict] = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self):
        """Start the scheduler with configured interval"""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self._job = self.scheduler.add_job(
            self._sync_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=SYNC_JOB_ID,
            name="Flight Synchronization",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping executions
            misfire_grace_time=300
        )

        self.scheduler.start()
        self._is_running = True

        logger.info(f"Flight sync scheduler started with {self.interval_minutes}min interval")

    async def stop(self):
        """Stop the scheduler"""
        if not self._is_running:
            logger.warning("Scheduler not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        self._job = None
        logger.info("Flight sync scheduler stopped")

    async def _sync_job(self):
        """Internal job method called by scheduler"""
        logger.info("Executing scheduled flight synchronization")
        self.last_stats = await self.sync_service.sync()

    async def trigger_manual_sync(self) -> dict:
        """
        Manually trigger a sync outside the schedule.

        Returns:
            Sync statistics dictionary
        """
        logger.info("Manual flight synchronization triggered")
        stats = await self.sync_service.sync()
        self.last_stats = stats
        return {"trigger": "manual", **stats}

    def get_next_run_time(self) -> Optional[str]:
        """
        Get the next scheduled run time.

        Returns:
            ISO datetime string of next run, or None if not scheduled
        """
        if self._job:
            next_run = self._job.next_run_time
            return next_run.isoformat() if next_run else None
        return None

    def update_interval(self, new_interval_minutes: int):
        """
        Update the sync interval dynamically.

        Args:
            new_interval_minutes: New interval in minutes
        """
        if not self._is_running:
            self.interval_minutes = new_interval_minutes
            return

        self._job = self.scheduler.reschedule_job(
            SYNC_JOB_ID,
            trigger=IntervalTrigger(minutes=new_interval_minutes)
        )
        self.interval_minutes = new_interval_minutes

        logger.info(f"Sync interval updated to {new_interval_minutes} minutes")

    def get_status(self) -> dict:
        """
        Get scheduler status information.

        Returns:
            Status dictionary
        """
        return {
            "running": self._is_running,
            "interval_minutes": self.interval_minutes,
            "next_run": self.get_next_run_time(),
            "job_id": self._job.id if self._job else None,
            "last_sync": self.last_stats,
        }
