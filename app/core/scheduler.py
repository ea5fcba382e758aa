"""
Scheduled full sync for the tournament API.

This module provides one scheduled background job:
- Full upstream sync (competitions, stages, teams, scores, stats)

The job is only registered when SYNC_SCHEDULE_ENABLED is set; manual sync
through the API works either way.

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.database import SessionLocal
from app.services.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

FULL_SYNC_JOB_ID = "full_sync"


async def run_full_sync() -> dict:
    """Run ``sync_all`` with its own session and upstream client."""
    db = SessionLocal()
    orchestrator = SyncOrchestrator(db)
    try:
        result = await orchestrator.sync_all()
        logger.info(f"Scheduled full sync finished: {result.message}")
        return result.to_dict()
    finally:
        await orchestrator.cleanup()
        db.close()


class SyncScheduler:
    """
    Scheduler for the periodic full sync.

    All scheduled jobs should be defined here with clear
    schedules and error handling.
    """

    def __init__(self):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting sync scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # Syncs never overlap
                "misfire_grace_time": 300
            }
        )

        self._schedule_full_sync()

        self.scheduler.start()
        self.running = True

        logger.info("Scheduler started with %d jobs", len(self.scheduler.get_jobs()))
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Scheduler stopped")

    def _schedule_full_sync(self):
        """
        Schedule: Full upstream sync.

        Frequency: Daily at SYNC_SCHEDULE_CRON_HOUR (UTC)
        Purpose: Keep every stored competition in step with upstream
        """
        if self.scheduler is None:
            return

        @self.scheduler.scheduled_job(
            trigger=CronTrigger(
                hour=settings.SYNC_SCHEDULE_CRON_HOUR,
                minute=0,
                timezone="UTC"
            ),
            id=FULL_SYNC_JOB_ID,
            name="Full Tournament Sync",
            misfire_grace_time=600
        )
        async def full_sync_job():
            try:
                await run_full_sync()
            except Exception as e:
                logger.error(f"Scheduled full sync failed: {e}", exc_info=True)

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        for job in self.scheduler.get_jobs():
            next_run = job.next_run_time
            next_run_str = next_run.strftime('%Y-%m-%d %H:%M UTC') if next_run else 'Pending'
            logger.info(f"Scheduled job {job.name} ({job.id}), next run: {next_run_str}")


# Global scheduler instance
_scheduler: Optional[SyncScheduler] = None


async def start_scheduler():
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = SyncScheduler()
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[SyncScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
