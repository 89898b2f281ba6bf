import logging
from typing import Any, Dict, Optional

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import Settings
from ingestion.job import run_ingest

logger = logging.getLogger(__name__)

JOB_ID = "ingest_job"


class IngestScheduler:
    """
    In-process interval schedule for deployments without an external cron.

    At most one invocation runs at a time; ticks missed while one is
    running collapse into a single follow-up run.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.scheduler = AsyncIOScheduler()
        self.last_results: Optional[Dict[str, Dict[str, Any]]] = None

    async def run_ingest_job(self):
        """Job to run every configured ingestion task"""
        logger.info("Scheduler: Starting ingestion job")
        self.last_results = await run_ingest(self.settings)
        logger.info(f"Scheduler: Ingestion job completed: {self.last_results}")

    def _on_job_error(self, event: JobExecutionEvent):
        logger.error(f"Scheduler: Ingestion job failed - {event.exception}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_ingest_job,
            trigger=IntervalTrigger(minutes=self.settings.SCHEDULE_INTERVAL_MINUTES),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self.scheduler.start()
        logger.info(
            f"Ingest scheduler started (every {self.settings.SCHEDULE_INTERVAL_MINUTES} minutes)"
        )

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Ingest scheduler stopped")
