import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from roomledger.core.models import (
    EmailStatus,
    InvoiceStatus,
    LineItem,
    LineItemInput,
    PaymentMethod,
    ReadingStatus,
)
from roomledger.services.batch import BatchResult


class ReadingCreate(BaseModel):
    room_id: uuid.UUID
    period_month: int
    period_year: int
    e_current_index: Decimal = Field(ge=0)
    w_current_index: Decimal = Field(ge=0)
    note: str | None = None


class ReadingBulkCreate(BaseModel):
    readings: list[ReadingCreate] = Field(min_length=1)


class ReadingResponse(BaseModel):
    id: uuid.UUID
    room_id: uuid.UUID
    building_id: uuid.UUID
    period_month: int
    period_year: int
    e_previous_index: Decimal
    e_current_index: Decimal
    e_consumption: Decimal
    e_unit_price: Decimal
    e_amount: Decimal
    w_previous_index: Decimal
    w_current_index: Decimal
    w_consumption: Decimal
    w_unit_price: Decimal
    w_amount: Decimal
    status: ReadingStatus
    note: str | None
    invoice_id: uuid.UUID | None
    confirmed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvoiceGenerate(BaseModel):
    room_id: uuid.UUID
    period_month: int
    period_year: int
    include_rent: bool = True
    extra_items: list[LineItemInput] = []
    due_date: datetime | None = None


class BuildingInvoiceGenerate(BaseModel):
    building_id: uuid.UUID
    period_month: int
    period_year: int
    include_rent: bool = True
    extra_items: list[LineItemInput] = []


class InvoiceResponse(BaseModel):
    id: uuid.UUID
    invoice_number: str
    landlord_id: uuid.UUID
    tenant_id: uuid.UUID
    contract_id: uuid.UUID
    room_id: uuid.UUID
    building_id: uuid.UUID
    period_month: int
    period_year: int
    items: list[LineItem]
    subtotal: Decimal
    discount_amount: Decimal
    late_fee: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    currency: str
    status: InvoiceStatus
    issued_at: datetime | None
    due_date: datetime | None
    sent_at: datetime | None
    paid_at: datetime | None
    cancelled_at: datetime | None
    payment_method: PaymentMethod | None
    payment_ref: str | None
    email_status: EmailStatus | None
    email_last_error: str | None
    note: str | None

    model_config = {"from_attributes": True}


class ManualPayment(BaseModel):
    """Body for confirming an offline payment."""

    method: PaymentMethod = PaymentMethod.CASH
    paid_at: datetime | None = None
    paid_amount: Decimal | None = Field(default=None, ge=0)
    note: str | None = None
    payment_ref: str | None = None


class PaymentLogResponse(BaseModel):
    id: uuid.UUID
    gateway: str
    method: str | None
    amount: Decimal
    currency: str
    status: str
    trans_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class BatchItemResponse(BaseModel):
    key: Any
    ok: bool
    record_id: uuid.UUID | None = None
    error: str | None = None
    skipped: bool = False


class BatchResponse(BaseModel):
    ok: bool
    success_count: int
    failure_count: int
    skipped_count: int
    items: list[BatchItemResponse]

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResponse":
        return cls(
            ok=result.ok,
            success_count=result.success_count,
            failure_count=result.failure_count,
            skipped_count=result.skipped_count,
            items=[
                BatchItemResponse(
                    key=str(item.key) if isinstance(item.key, uuid.UUID) else item.key,
                    ok=item.ok,
                    record_id=item.record_id,
                    error=item.error,
                    skipped=item.skipped,
                )
                for item in result.items
            ],
        )
