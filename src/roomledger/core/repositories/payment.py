"""Repository for PaymentLog model."""

from __future__ import annotations

from uuid import UUID

from roomledger.core.models import PaymentLog
from roomledger.core.repositories.base import BaseRepository


class PaymentLogRepository(BaseRepository[PaymentLog]):
    """PaymentLog-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(PaymentLog)

    async def list_for_invoice(self, invoice_id: UUID) -> list[PaymentLog]:
        return await self.model.filter(invoice_id=invoice_id).order_by("created_at")
