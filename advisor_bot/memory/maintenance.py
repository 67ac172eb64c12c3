"""
Memory Maintenance
==================

Periodic housekeeping for advisor memory, run by APScheduler on the bot's
event loop. Expired entries are already invisible to reads; this job
deletes them so the table does not grow without bound.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from advisor_bot.errors import StorageError
from advisor_bot.memory.advisor_memory import AdvisorMemoryStore
from advisor_bot.utils.logger import Logger

logger = Logger("Maintenance")

PURGE_JOB_ID = "purge_expired_advisor_memory"


class MemoryJanitor:
    """
    Schedules the expired-memory purge.

    Example:
        janitor = MemoryJanitor(advisor_memory, interval_minutes=60)
        janitor.start()
        ...
        janitor.stop()
    """

    def __init__(
        self,
        advisor_memory: AdvisorMemoryStore,
        interval_minutes: int = 60,
        scheduler: AsyncIOScheduler | None = None
    ):
        self.advisor_memory = advisor_memory
        self.interval_minutes = interval_minutes
        self.scheduler = scheduler or AsyncIOScheduler()

    async def purge_once(self) -> int:
        """Run one purge; failures are logged and reported as 0 deleted."""
        try:
            return await self.advisor_memory.purge_expired()
        except StorageError as e:
            logger.error("Expired memory purge failed", e)
            return 0

    def start(self) -> None:
        """Register the purge job and start the scheduler."""
        if self.interval_minutes <= 0:
            logger.info("Expired memory purge disabled")
            return

        self.scheduler.add_job(
            self.purge_once,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=PURGE_JOB_ID,
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Expired memory purge scheduled every {self.interval_minutes} minutes")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
