"""Interval jobs for the reconciliation sweep and the failed-order cleanup."""

from __future__ import annotations

import logging

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from settlement.core.config import SchedulerSettings
from settlement.modules.reconciliation import ReconciliationService

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep_pending_orders"
CLEANUP_JOB_ID = "cleanup_failed_orders"


class SettlementScheduler:
    """Owns an ``AsyncIOScheduler``; started and stopped with the application."""

    def __init__(self, reconciliation: ReconciliationService, settings: SchedulerSettings) -> None:
        self._reconciliation = reconciliation
        self._settings = settings
        self.scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 120},
            timezone="UTC",
        )

    def setup_jobs(self) -> None:
        self.scheduler.add_job(
            self.sweep_pending,
            trigger=IntervalTrigger(minutes=self._settings.sweep_interval_minutes),
            id=SWEEP_JOB_ID,
            name="Sweep pending orders",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.cleanup_failed,
            trigger=IntervalTrigger(minutes=self._settings.cleanup_interval_minutes),
            id=CLEANUP_JOB_ID,
            name="Flag permanently failed orders",
            replace_existing=True,
        )

    def start(self) -> None:
        if not self._settings.enabled:
            logger.info("Scheduler disabled; sweep runs only through the cron endpoints")
            return
        self.setup_jobs()
        self.scheduler.start()
        logger.info(
            "Scheduler started: sweep every %s min, cleanup every %s min",
            self._settings.sweep_interval_minutes,
            self._settings.cleanup_interval_minutes,
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def sweep_pending(self) -> None:
        try:
            await self._reconciliation.sweep_pending()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Scheduled sweep failed")

    async def cleanup_failed(self) -> None:
        try:
            await self._reconciliation.cleanup_failed()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Scheduled failed-order cleanup failed")
