"""Scheduler service - fires the batch check on a fixed tick.

The tick is the only time-based trigger: each firing runs one
``BatchOrchestrator.run_batch``. ``max_instances=1`` keeps a slow batch
from overlapping the next tick within this process.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import Settings
from .orchestrator import BatchOrchestrator

logger = logging.getLogger(__name__)


class SchedulerService:
    """Runs ``run_batch`` every ``scheduler_tick_seconds``."""

    def __init__(self, settings: Settings, orchestrator: BatchOrchestrator):
        self.tick_seconds = settings.scheduler_tick_seconds
        self.orchestrator = orchestrator
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_checks,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id="run_checks",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.tick_seconds,
        )
        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (tick={self.tick_seconds}s)")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def run_checks(self):
        """Scheduled job body. A failed batch is logged; the next tick retries naturally."""
        try:
            summary = await self.orchestrator.run_batch()
        except Exception as e:
            logger.error(f"Error running checks: {type(e).__name__}: {e}")
            return
        if "processed" in summary:
            logger.debug(f"Scheduled batch processed {summary['processed']} sites")
