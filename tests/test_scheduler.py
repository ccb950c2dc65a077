"""Tests for the background job scheduler."""

from datetime import date

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from roomledger.core.dates import Period
from roomledger.core.repositories.invoice import InvoiceRepository
from roomledger.services.scheduler import SchedulerService


@pytest.mark.asyncio
async def test_scheduler_registers_jobs(services):
    scheduler = AsyncIOScheduler(timezone="UTC")
    service = SchedulerService(services.billing, services.lifecycle, scheduler)

    service.start()
    try:
        job_ids = {job.id for job in scheduler.get_jobs()}
        assert job_ids == {"monthly_billing", "overdue_sweep"}
    finally:
        service.shutdown()


@pytest.mark.asyncio
async def test_scheduler_runs_monthly_billing(services, room, contract, caplog):
    """Smoke test: the monthly job invoices the previous month."""
    scheduler = AsyncIOScheduler()
    service = SchedulerService(services.billing, services.lifecycle, scheduler)

    caplog.set_level("INFO")

    await service._run_monthly_billing()

    assert "Monthly invoice generation" in caplog.text
    previous = Period.from_date(date.today()).previous()
    invoice = await InvoiceRepository().find_open_for_period(
        contract.landlord_id, room.id, previous
    )
    assert invoice is not None


@pytest.mark.asyncio
async def test_scheduler_job_failure_is_logged(services, caplog, monkeypatch):
    async def _explode(*args, **kwargs):
        raise RuntimeError("database is gone")

    monkeypatch.setattr(services.lifecycle, "sweep_overdue", _explode)
    service = SchedulerService(
        services.billing, services.lifecycle, AsyncIOScheduler()
    )

    await service._run_overdue_sweep()

    assert "Overdue sweep failed: database is gone" in caplog.text

