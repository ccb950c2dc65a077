"""Repository for Contract model."""

from __future__ import annotations

from uuid import UUID

from tortoise.expressions import Q

from roomledger.core.dates import Period, period_range
from roomledger.core.models import Contract, ContractStatus
from roomledger.core.repositories.base import BaseRepository


class ContractRepository(BaseRepository[Contract]):
    """Contract-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Contract)

    async def find_active(self, room_id: UUID, period: Period) -> Contract | None:
        """
        Finds the lease that covers a room during a billing period.

        A contract qualifies when it is fully executed, starts on or before
        the last day of the period and ends on or after its first day (or
        has no end date). When several qualify, the latest-starting wins.
        """
        period_start, period_end = period_range(period)
        return (
            await self.model.filter(
                Q(room_id=room_id),
                Q(status=ContractStatus.COMPLETED),
                Q(is_deleted=False),
                Q(start_date__lte=period_end),
                Q(Q(end_date__gte=period_start) | Q(end_date__isnull=True)),
            )
            .order_by("-start_date", "-created_at")
            .first()
        )
