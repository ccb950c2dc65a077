"""Repository for Invoice model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.expressions import F

from roomledger.core.dates import Period
from roomledger.core.models import Invoice, InvoiceCounter, InvoiceStatus
from roomledger.core.repositories.base import BaseRepository

VOID_STATUSES = (InvoiceStatus.CANCELLED, InvoiceStatus.REPLACED)


def format_invoice_number(period: Period, sequence: int) -> str:
    return f"INV-{period.year:04d}{period.month:02d}-{sequence:03d}"


class InvoiceRepository(BaseRepository[Invoice]):
    """Invoice-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Invoice)

    async def find_open_for_period(
        self, landlord_id: UUID, room_id: UUID, period: Period
    ) -> Invoice | None:
        """A non-voided invoice occupying the room's slot for the period."""
        return (
            await self.model.filter(
                landlord_id=landlord_id,
                room_id=room_id,
                period_month=period.month,
                period_year=period.year,
            )
            .exclude(status__in=VOID_STATUSES)
            .first()
        )

    async def next_invoice_number(
        self,
        landlord_id: UUID,
        period: Period,
        using_db: BaseDBAsyncClient | None = None,
    ) -> str:
        """
        Allocates the next sequential number for a landlord and period.

        Must run inside the transaction that persists the invoice so a
        rolled-back generation does not consume a number.
        """
        counter, _ = await InvoiceCounter.get_or_create(
            landlord_id=landlord_id,
            period_month=period.month,
            period_year=period.year,
            using_db=using_db,
        )
        await InvoiceCounter.filter(id=counter.id).using_db(using_db).update(
            last_number=F("last_number") + 1
        )
        await counter.refresh_from_db(fields=["last_number"], using_db=using_db)
        return format_invoice_number(period, counter.last_number)

    async def mark_overdue(self, now: datetime) -> int:
        """Moves every sent invoice past its due date to overdue."""
        return await self.model.filter(
            status=InvoiceStatus.SENT, due_date__lt=now
        ).update(status=InvoiceStatus.OVERDUE)

    async def list_unpaid(
        self, landlord_id: UUID, building_ids: frozenset[UUID] | None = None
    ) -> list[Invoice]:
        """Sent and overdue invoices, oldest due first."""
        query = self.model.filter(
            landlord_id=landlord_id,
            status__in=(InvoiceStatus.SENT, InvoiceStatus.OVERDUE),
        )
        if building_ids is not None:
            query = query.filter(building_id__in=list(building_ids))
        return await query.select_related("room").order_by("due_date")

    async def list_drafts(
        self,
        landlord_id: UUID,
        building_ids: frozenset[UUID] | None = None,
        period: Period | None = None,
    ) -> list[Invoice]:
        query = self.model.filter(landlord_id=landlord_id, status=InvoiceStatus.DRAFT)
        if building_ids is not None:
            query = query.filter(building_id__in=list(building_ids))
        if period is not None:
            query = query.filter(period_month=period.month, period_year=period.year)
        return await query.order_by("invoice_number")
