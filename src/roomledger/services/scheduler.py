"""Service for scheduling background jobs."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from roomledger.services.billing import BillingService
from roomledger.services.lifecycle import InvoiceLifecycleService

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages scheduled tasks for the application."""

    def __init__(
        self,
        billing_service: BillingService,
        lifecycle_service: InvoiceLifecycleService,
        scheduler: AsyncIOScheduler,
    ):
        self._billing_service = billing_service
        self._lifecycle_service = lifecycle_service
        self._scheduler = scheduler

    def start(self):
        """Starts the scheduler and adds jobs."""
        logger.info("Starting scheduler...")
        self._scheduler.add_job(
            self._run_monthly_billing,
            trigger=CronTrigger(day=1, hour=0, minute=5),
            id="monthly_billing",
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._run_overdue_sweep,
            trigger=CronTrigger(hour=2, minute=0),
            id="overdue_sweep",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Scheduler started.")

    def shutdown(self):
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped.")

    async def _run_monthly_billing(self):
        """Invoices every rented room for the month that just ended."""
        try:
            await self._billing_service.generate_monthly()
        except Exception as e:
            logger.error(f"Monthly billing job failed: {e}", exc_info=True)

    async def _run_overdue_sweep(self):
        try:
            await self._lifecycle_service.sweep_overdue()
        except Exception as e:
            logger.error(f"Overdue sweep failed: {e}", exc_info=True)
