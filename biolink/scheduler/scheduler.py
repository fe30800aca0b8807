"""Scheduler for the biolink application.

This module runs the analytics sync worker on a fixed interval using
APScheduler, as an in-process alternative to an external cron hitting
the sync endpoint.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from biolink.core.config import settings
from biolink.core.redis import RedisClientManager
from biolink.db.base import get_session
from biolink.repositories.click_repository import ClickEventRepository
from biolink.repositories.link_repository import LinkRepository
from biolink.services.click_queue import ClickQueue
from biolink.services.exceptions import SyncError
from biolink.services.sync import AnalyticsSyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "sync_analytics"


async def sync_analytics_job(redis_manager: RedisClientManager) -> Dict[str, Any]:
    """
    Drain one batch of the click buffer.

    Creates its own database session and service instances. Failures are
    logged and reported in the return value; the buffer is retried on the
    next tick.
    """
    try:
        client = await redis_manager.get_client()
        sync_service = AnalyticsSyncService(LinkRepository(), ClickEventRepository())

        async with get_session() as session:
            result = await sync_service.drain_and_sync(session, ClickQueue(client))

        if result["popped"]:
            logger.info(
                f"Scheduled sync completed: popped={result['popped']}, "
                f"inserted={result['inserted']}, discarded={result['discarded']}"
            )
        return result
    except SyncError as e:
        logger.error(f"Error in scheduled analytics sync: {e}")
        return {
            "status": "error",
            "error": str(e),
            "timestamp": datetime.utcnow().isoformat()
        }


class SchedulerService:
    """
    Scheduler service for the analytics sync worker.

    Jobs receive the Redis manager as an argument, so the job store is kept
    in memory and jobs are registered again on every start.
    """

    def __init__(self, redis_manager: RedisClientManager):
        self.redis_manager = redis_manager
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.is_running = False
        self.jobs: List[Dict[str, Any]] = []

    def initialize(self) -> None:
        """Create the APScheduler instance without starting it."""
        if self.scheduler:
            logger.warning("Scheduler already initialized")
            return

        self.scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            job_defaults={
                "coalesce": settings.SCHEDULER_JOB_COALESCE,
                "max_instances": settings.SCHEDULER_JOB_MAX_INSTANCES,
                "misfire_grace_time": settings.SCHEDULER_MISFIRE_GRACE_TIME,
            }
        )
        logger.info("Scheduler initialized")

    def start(self) -> None:
        """Register the sync job and start the scheduler."""
        if not self.scheduler:
            self.initialize()

        if self.is_running:
            logger.warning("Scheduler already running")
            return

        try:
            self.scheduler.add_job(
                sync_analytics_job,
                trigger=IntervalTrigger(seconds=settings.SYNC_INTERVAL_SECONDS, timezone="UTC"),
                args=[self.redis_manager],
                id=SYNC_JOB_ID,
                name="Sync Click Analytics",
                replace_existing=True
            )
            self.jobs = [{
                "id": SYNC_JOB_ID,
                "name": "Sync Click Analytics",
                "interval": f"{settings.SYNC_INTERVAL_SECONDS} seconds",
                "function": "sync_analytics_job"
            }]

            self.scheduler.start()
            self.is_running = True
            logger.info(f"Scheduler started with {len(self.jobs)} jobs")
        except Exception as e:
            logger.error(f"Error starting scheduler: {e}", exc_info=True)
            self.is_running = False
            raise

    def shutdown(self) -> None:
        """Stop the scheduler, waiting for a running sync to finish."""
        if not self.scheduler or not self.is_running:
            logger.warning("Scheduler not running, nothing to shut down")
            return

        self.scheduler.shutdown(wait=True)
        self.is_running = False
        self.scheduler = None
        logger.info("Scheduler shut down successfully")

    def get_status(self) -> Dict[str, Any]:
        job_details = []
        if self.scheduler and self.is_running:
            for job in self.scheduler.get_jobs():
                job_details.append({
                    "job_id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
                })

        return {
            "running": self.is_running,
            "jobs": self.jobs,
            "scheduler_jobs_status": job_details
        }
