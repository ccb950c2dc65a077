"""Domain models for the RoomLedger application."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel as Schema
from pydantic import Field
from tortoise import fields, models

from roomledger.core import calculations
from roomledger.core.dates import Period
from roomledger.core.errors import ValidationError

# Constant stored in guard columns while a row occupies its (room, period)
# slot. Cleared to NULL to release the slot; NULLs never collide in a
# unique index.
SLOT_TAKEN = "taken"


class BuildingStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RoomStatus(str, enum.Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"


class ContractStatus(str, enum.Enum):
    """Contract workflow. ``COMPLETED`` is the fully executed lease."""

    DRAFT = "draft"
    READY_FOR_SIGN = "ready_for_sign"
    SIGNED_BY_LANDLORD = "signed_by_landlord"
    SENT_TO_TENANT = "sent_to_tenant"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class ChargeType(str, enum.Enum):
    FIXED = "fixed"
    PER_PERSON = "per_person"


class UtilityKind(str, enum.Enum):
    """Quantities tracked on every meter reading."""

    ELECTRICITY = "electricity"
    WATER = "water"

    @property
    def prefix(self) -> str:
        return "e" if self is UtilityKind.ELECTRICITY else "w"


class ReadingStatus(str, enum.Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    BILLED = "billed"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REPLACED = "replaced"


class ItemType(str, enum.Enum):
    RENT = "rent"
    ELECTRIC = "electric"
    WATER = "water"
    SERVICE = "service"
    OTHER = "other"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    ONLINE_GATEWAY = "online_gateway"


class EmailStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class BaseModel(models.Model):
    """Abstract base model with common fields."""

    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        abstract = True


class Building(BaseModel):
    """A building owned by a landlord, with its current utility rates."""

    landlord_id = fields.UUIDField(index=True)
    name = fields.CharField(max_length=255)
    address = fields.CharField(max_length=255, default="")
    status = fields.CharEnumField(BuildingStatus, default=BuildingStatus.ACTIVE)
    e_price = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    w_price = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    is_deleted = fields.BooleanField(default=False)

    rooms: fields.ReverseRelation[Room]
    services: fields.ReverseRelation[BuildingService]

    @property
    def is_operational(self) -> bool:
        return not self.is_deleted and self.status == BuildingStatus.ACTIVE

    def unit_price(self, kind: UtilityKind) -> Decimal:
        return Decimal(getattr(self, f"{kind.prefix}_price"))

    def __str__(self) -> str:
        return self.name


class Room(BaseModel):
    """A rentable room. Baseline indices seed the room's next reading."""

    number = fields.CharField(max_length=50)
    status = fields.CharEnumField(RoomStatus, default=RoomStatus.AVAILABLE)
    e_baseline_index = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    w_baseline_index = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    is_deleted = fields.BooleanField(default=False)
    building: fields.ForeignKeyRelation[Building] = fields.ForeignKeyField(
        "models.Building", related_name="rooms"
    )

    building_id: uuid.UUID
    readings: fields.ReverseRelation[MeterReading]

    class Meta:
        unique_together = ("building", "number")

    def baseline(self, kind: UtilityKind) -> Decimal:
        return Decimal(getattr(self, f"{kind.prefix}_baseline_index"))

    def __str__(self) -> str:
        return f"Room {self.number}"


class Contract(BaseModel):
    """A lease of a room to a tenant. Read-only for the billing engine."""

    landlord_id = fields.UUIDField(index=True)
    tenant_id = fields.UUIDField(index=True)
    tenant_name = fields.CharField(max_length=255, default="")
    tenant_email = fields.CharField(max_length=255, null=True)
    status = fields.CharEnumField(ContractStatus, default=ContractStatus.DRAFT)
    rent_price = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    occupant_count = fields.IntField(default=1)
    start_date = fields.DateField()
    end_date = fields.DateField(null=True)
    is_deleted = fields.BooleanField(default=False)
    room: fields.ForeignKeyRelation[Room] = fields.ForeignKeyField(
        "models.Room", related_name="contracts"
    )
    building: fields.ForeignKeyRelation[Building] = fields.ForeignKeyField(
        "models.Building", related_name="contracts"
    )

    room_id: uuid.UUID
    building_id: uuid.UUID

    def __str__(self) -> str:
        end = self.end_date or "open"
        return f"Contract {self.id} ({self.start_date} to {end})"


class BuildingService(BaseModel):
    """A recurring building service (internet, parking...) billed per room."""

    name = fields.CharField(max_length=100)
    label = fields.CharField(max_length=255, null=True)
    description = fields.CharField(max_length=255, null=True)
    charge_type = fields.CharEnumField(ChargeType, default=ChargeType.FIXED)
    fee = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    is_deleted = fields.BooleanField(default=False)
    building: fields.ForeignKeyRelation[Building] = fields.ForeignKeyField(
        "models.Building", related_name="services"
    )

    building_id: uuid.UUID


@dataclass(frozen=True)
class MeterQuantity:
    """One tracked quantity of a reading."""

    kind: UtilityKind
    previous_index: Decimal
    current_index: Decimal
    unit_price: Decimal
    consumption: Decimal
    amount: Decimal


class MeterReading(BaseModel):
    """Electricity and water indices of a room for a billing period."""

    landlord_id = fields.UUIDField(index=True)
    period_month = fields.SmallIntField()
    period_year = fields.SmallIntField()

    e_previous_index = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    e_current_index = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    e_consumption = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    e_unit_price = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    e_amount = fields.DecimalField(max_digits=16, decimal_places=2, default=0)

    w_previous_index = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    w_current_index = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    w_consumption = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    w_unit_price = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    w_amount = fields.DecimalField(max_digits=16, decimal_places=2, default=0)

    status = fields.CharEnumField(ReadingStatus, default=ReadingStatus.DRAFT)
    note = fields.TextField(null=True)
    created_by_id = fields.UUIDField(null=True)
    confirmed_at = fields.DatetimeField(null=True)
    confirmed_by_id = fields.UUIDField(null=True)
    invoice_id = fields.UUIDField(null=True, index=True)

    is_deleted = fields.BooleanField(default=False)
    deleted_at = fields.DatetimeField(null=True)
    live_key = fields.CharField(max_length=8, null=True, default=SLOT_TAKEN)

    room: fields.ForeignKeyRelation[Room] = fields.ForeignKeyField(
        "models.Room", related_name="readings"
    )
    building: fields.ForeignKeyRelation[Building] = fields.ForeignKeyField(
        "models.Building", related_name="readings"
    )

    room_id: uuid.UUID
    building_id: uuid.UUID

    class Meta:
        unique_together = ("room", "period_year", "period_month", "live_key")

    @property
    def period(self) -> Period:
        return Period(self.period_month, self.period_year)

    @property
    def is_locked(self) -> bool:
        return self.status != ReadingStatus.DRAFT or self.invoice_id is not None

    def quantity(self, kind: UtilityKind) -> MeterQuantity:
        p = kind.prefix
        return MeterQuantity(
            kind=kind,
            previous_index=Decimal(getattr(self, f"{p}_previous_index")),
            current_index=Decimal(getattr(self, f"{p}_current_index")),
            unit_price=Decimal(getattr(self, f"{p}_unit_price")),
            consumption=Decimal(getattr(self, f"{p}_consumption")),
            amount=Decimal(getattr(self, f"{p}_amount")),
        )

    def recalculate(self) -> None:
        """Recomputes consumption and amount of both quantities."""
        for kind in UtilityKind:
            q = self.quantity(kind)
            consumption = calculations.calculate_consumption(
                q.current_index, q.previous_index
            )
            amount = calculations.calculate_cost(consumption, q.unit_price)
            setattr(self, f"{kind.prefix}_consumption", consumption)
            setattr(self, f"{kind.prefix}_amount", amount)

    def __str__(self) -> str:
        return f"Reading for room {self.room_id} in {self.period}"


class LineItem(Schema):
    """An invoice line, embedded in ``Invoice.items``."""

    type: ItemType
    label: str = Field(min_length=1)
    description: str | None = None
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    amount: Decimal = Field(ge=0)
    reading_id: uuid.UUID | None = None
    meta: dict[str, Any] | None = None


class LineItemInput(Schema):
    """A line item as supplied by a user; the amount may be left out."""

    type: ItemType = ItemType.OTHER
    label: str = ""
    description: str | None = None
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    amount: Decimal | None = Field(default=None, ge=0)
    reading_id: uuid.UUID | None = None
    meta: dict[str, Any] | None = None

    def to_line_item(self) -> LineItem:
        if not self.label.strip():
            raise ValidationError("Line item label is required.")
        amount = self.amount
        if amount is None:
            amount = max(Decimal("0"), self.quantity * self.unit_price)
        return LineItem(
            type=self.type,
            label=self.label.strip(),
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            amount=amount,
            reading_id=self.reading_id,
            meta=self.meta,
        )


class Invoice(BaseModel):
    """A bill for one room and period, owning its line items."""

    landlord_id = fields.UUIDField(index=True)
    tenant_id = fields.UUIDField(index=True)
    contract_id = fields.UUIDField(index=True)
    period_month = fields.SmallIntField()
    period_year = fields.SmallIntField()
    invoice_number = fields.CharField(max_length=32)

    items = fields.JSONField(default=list)
    subtotal = fields.DecimalField(max_digits=16, decimal_places=2, default=0)
    discount_amount = fields.DecimalField(max_digits=16, decimal_places=2, default=0)
    late_fee = fields.DecimalField(max_digits=16, decimal_places=2, default=0)
    total_amount = fields.DecimalField(max_digits=16, decimal_places=2, default=0)
    paid_amount = fields.DecimalField(max_digits=16, decimal_places=2, default=0)
    currency = fields.CharField(max_length=8, default="VND")

    status = fields.CharEnumField(InvoiceStatus, default=InvoiceStatus.DRAFT)
    issued_at = fields.DatetimeField(null=True)
    due_date = fields.DatetimeField(null=True)
    sent_at = fields.DatetimeField(null=True)
    paid_at = fields.DatetimeField(null=True)
    cancelled_at = fields.DatetimeField(null=True)

    payment_method = fields.CharEnumField(PaymentMethod, null=True)
    payment_ref = fields.CharField(max_length=255, null=True)
    payment_note = fields.TextField(null=True)

    email_to_override = fields.CharField(max_length=255, null=True)
    email_status = fields.CharEnumField(EmailStatus, null=True)
    email_sent_at = fields.DatetimeField(null=True)
    email_last_error = fields.TextField(null=True)

    note = fields.TextField(null=True)
    internal_note = fields.TextField(null=True)
    created_by_id = fields.UUIDField(null=True)
    updated_by_id = fields.UUIDField(null=True)
    period_guard = fields.CharField(max_length=8, null=True, default=SLOT_TAKEN)

    room: fields.ForeignKeyRelation[Room] = fields.ForeignKeyField(
        "models.Room", related_name="invoices"
    )
    building: fields.ForeignKeyRelation[Building] = fields.ForeignKeyField(
        "models.Building", related_name="invoices"
    )

    room_id: uuid.UUID
    building_id: uuid.UUID
    history: fields.ReverseRelation[InvoiceHistory]
    payment_logs: fields.ReverseRelation[PaymentLog]

    class Meta:
        unique_together = (
            ("landlord_id", "room", "period_year", "period_month", "period_guard"),
            ("landlord_id", "invoice_number"),
        )

    @property
    def period(self) -> Period:
        return Period(self.period_month, self.period_year)

    def line_items(self) -> list[LineItem]:
        return [LineItem.model_validate(raw) for raw in self.items or []]

    def set_line_items(self, items: list[LineItem]) -> None:
        self.items = [item.model_dump(mode="json") for item in items]

    def recalculate_totals(self) -> None:
        self.subtotal = calculations.calculate_subtotal(
            item.amount for item in self.line_items()
        )
        self.total_amount = calculations.calculate_total(
            Decimal(self.subtotal),
            Decimal(self.discount_amount or 0),
            Decimal(self.late_fee or 0),
        )

    def sync_period_guard(self) -> None:
        """Releases the (room, period) slot once the invoice is voided."""
        voided = self.status in (InvoiceStatus.CANCELLED, InvoiceStatus.REPLACED)
        self.period_guard = None if voided else SLOT_TAKEN

    def __str__(self) -> str:
        return f"Invoice {self.invoice_number} ({self.status.value})"


class InvoiceCounter(BaseModel):
    """Last issued invoice sequence for a landlord and period."""

    landlord_id = fields.UUIDField()
    period_month = fields.SmallIntField()
    period_year = fields.SmallIntField()
    last_number = fields.IntField(default=0)

    class Meta:
        unique_together = ("landlord_id", "period_year", "period_month")


class InvoiceHistory(BaseModel):
    """A recorded change to an invoice that was already sent to the tenant."""

    action = fields.CharField(max_length=64)
    items_diff = fields.JSONField(null=True)
    meta_diff = fields.JSONField(null=True)
    updated_by_id = fields.UUIDField(null=True)
    invoice: fields.ForeignKeyRelation[Invoice] = fields.ForeignKeyField(
        "models.Invoice", related_name="history"
    )

    invoice_id: uuid.UUID

    def __str__(self) -> str:
        return f"{self.action} on invoice {self.invoice_id}"


class PaymentLog(BaseModel):
    """A payment attempt reported by a gateway, successful or not."""

    gateway = fields.CharField(max_length=32)
    method = fields.CharField(max_length=64, null=True)
    amount = fields.DecimalField(max_digits=16, decimal_places=2, default=0)
    currency = fields.CharField(max_length=8, default="VND")
    status = fields.CharField(max_length=16)
    trans_id = fields.CharField(max_length=128, null=True)
    raw_payload = fields.JSONField(null=True)
    invoice: fields.ForeignKeyRelation[Invoice] = fields.ForeignKeyField(
        "models.Invoice", related_name="payment_logs", null=True
    )

    invoice_id: uuid.UUID | None
