"""Repository for MeterReading model."""

from __future__ import annotations

from uuid import UUID

from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.expressions import Q

from roomledger.core.dates import Period
from roomledger.core.models import MeterReading, ReadingStatus
from roomledger.core.repositories.base import BaseRepository


def _before(period: Period) -> Q:
    return Q(period_year__lt=period.year) | Q(
        period_year=period.year, period_month__lt=period.month
    )


class ReadingRepository(BaseRepository[MeterReading]):
    """Reading-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(MeterReading)

    async def get_live(self, reading_id: UUID) -> MeterReading | None:
        """A reading that has not been soft-deleted."""
        return (
            await self.model.filter(id=reading_id, is_deleted=False)
            .select_related("building")
            .first()
        )

    async def find_for_period(
        self, room_id: UUID, period: Period
    ) -> MeterReading | None:
        return await self.model.filter(
            room_id=room_id,
            period_month=period.month,
            period_year=period.year,
            is_deleted=False,
        ).first()

    async def latest_before(
        self, room_id: UUID, period: Period, exclude_id: UUID | None = None
    ) -> MeterReading | None:
        """The room's most recent reading for a period earlier than ``period``."""
        query = self.model.filter(_before(period), room_id=room_id, is_deleted=False)
        if exclude_id is not None:
            query = query.exclude(id=exclude_id)
        return await query.order_by("-period_year", "-period_month").first()

    async def list_billable(
        self, room_id: UUID, period: Period
    ) -> list[MeterReading]:
        """Confirmed readings of a room and period not yet linked to an invoice."""
        return await self.model.filter(
            room_id=room_id,
            period_month=period.month,
            period_year=period.year,
            status=ReadingStatus.CONFIRMED,
            invoice_id__isnull=True,
            is_deleted=False,
        ).order_by("created_at")

    async def mark_billed(
        self,
        reading_ids: list[UUID],
        invoice_id: UUID,
        using_db: BaseDBAsyncClient | None = None,
    ) -> int:
        """Links confirmed, unbilled readings to an invoice.

        Returns the number of readings transitioned."""
        if not reading_ids:
            return 0
        return (
            await self.model.filter(
                id__in=reading_ids,
                status=ReadingStatus.CONFIRMED,
                invoice_id__isnull=True,
                is_deleted=False,
            )
            .using_db(using_db)
            .update(status=ReadingStatus.BILLED, invoice_id=invoice_id)
        )

    async def search(
        self,
        landlord_id: UUID,
        building_ids: frozenset[UUID] | None = None,
        building_id: UUID | None = None,
        room_id: UUID | None = None,
        status: ReadingStatus | None = None,
        period: Period | None = None,
    ) -> list[MeterReading]:
        query = self.model.filter(landlord_id=landlord_id, is_deleted=False)
        if building_ids is not None:
            query = query.filter(building_id__in=list(building_ids))
        if building_id is not None:
            query = query.filter(building_id=building_id)
        if room_id is not None:
            query = query.filter(room_id=room_id)
        if status is not None:
            query = query.filter(status=status)
        if period is not None:
            query = query.filter(period_month=period.month, period_year=period.year)
        return await query.order_by("-period_year", "-period_month", "-created_at")
