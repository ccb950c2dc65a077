"""Service governing invoice status transitions and field locking."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from roomledger.core import diff
from roomledger.core.access import ActorContext
from roomledger.core.dates import MIN_PERIOD_YEAR, Period, utcnow
from roomledger.core.errors import (
    BillingError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from roomledger.core.models import (
    EmailStatus,
    Invoice,
    InvoiceHistory,
    InvoiceStatus,
    LineItemInput,
    PaymentMethod,
)
from roomledger.core.repositories.contract import ContractRepository
from roomledger.core.repositories.invoice import InvoiceRepository
from roomledger.core.repositories.room import RoomRepository
from roomledger.services.batch import BatchResult
from roomledger.services.export import invoice_context
from roomledger.services.notifier import Notifier

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.OVERDUE)
LOCKED_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.REPLACED)
UNSENDABLE_STATUSES = LOCKED_STATUSES

# Transitions reachable through ``update``. Payment goes through ``mark_paid``.
STATUS_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
    InvoiceStatus.REPLACED: frozenset(),
}

# Fields that stay editable on a paid invoice.
FREE_TEXT_FIELDS = frozenset({"note", "internal_note", "payment_ref"})

INVOICE_EMAIL_TEMPLATE = "invoice_issued"


class InvoicePatch(BaseModel):
    """Partial update of an invoice. Only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    items: list[LineItemInput] | None = None
    discount_amount: Decimal | None = Field(default=None, ge=0)
    late_fee: Decimal | None = Field(default=None, ge=0)
    period_month: int | None = None
    period_year: int | None = None
    room_id: UUID | None = None
    tenant_id: UUID | None = None
    building_id: UUID | None = None
    contract_id: UUID | None = None
    status: InvoiceStatus | None = None
    due_date: datetime | None = None
    note: str | None = None
    internal_note: str | None = None
    payment_ref: str | None = None


class InvoiceLifecycleService:
    """Moves invoices through draft, sent, overdue, paid and cancelled."""

    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        room_repo: RoomRepository,
        contract_repo: ContractRepository,
        notifier: Notifier | None = None,
        min_period_year: int = MIN_PERIOD_YEAR,
    ):
        self._invoice_repo = invoice_repo
        self._room_repo = room_repo
        self._contract_repo = contract_repo
        self._notifier = notifier
        self._min_period_year = min_period_year

    @property
    def can_dispatch(self) -> bool:
        return self._notifier is not None

    async def get_invoice(self, ctx: ActorContext, invoice_id: UUID) -> Invoice:
        invoice = await Invoice.filter(id=invoice_id).select_related("building").first()
        if not invoice:
            raise NotFoundError(f"Invoice {invoice_id} not found.")
        ctx.ensure_building(invoice.building)
        return invoice

    async def mark_paid(
        self,
        ctx: ActorContext,
        invoice_id: UUID,
        method: PaymentMethod = PaymentMethod.CASH,
        paid_at: datetime | None = None,
        paid_amount: Decimal | None = None,
        note: str | None = None,
        payment_ref: str | None = None,
    ) -> Invoice:
        """
        Records full payment of a draft, sent or overdue invoice.

        The status check is repeated in the UPDATE so a manual confirmation
        and a gateway callback cannot both pay the same invoice.
        """
        invoice = await self.get_invoice(ctx, invoice_id)
        if invoice.status not in PAYABLE_STATUSES:
            raise StateError(
                f"Invoice {invoice.id} is {invoice.status.value} and cannot be paid."
            )
        if paid_amount is not None and paid_amount < 0:
            raise ValidationError("Paid amount cannot be negative.")

        values = {
            "status": InvoiceStatus.PAID,
            "paid_at": paid_at or utcnow(),
            "paid_amount": (
                paid_amount if paid_amount is not None else invoice.total_amount
            ),
            "payment_method": method,
            "updated_by_id": ctx.actor_id,
        }
        if note:
            values["payment_note"] = note
        if payment_ref:
            values["payment_ref"] = payment_ref

        updated = await Invoice.filter(
            id=invoice.id, status__in=PAYABLE_STATUSES
        ).update(**values)
        if not updated:
            raise StateError(f"Invoice {invoice.id} changed status concurrently.")

        await invoice.refresh_from_db()
        logger.info(
            f"Invoice {invoice.invoice_number} paid "
            f"({method.value}, {invoice.paid_amount})."
        )
        return invoice

    async def update(
        self, ctx: ActorContext, invoice_id: UUID, patch: InvoicePatch
    ) -> Invoice:
        """
        Applies a partial update, all or nothing.

        Paid, cancelled and replaced invoices only accept free-text fields.
        Changes to an invoice the tenant has already received are recorded
        in its history.
        """
        invoice = await self.get_invoice(ctx, invoice_id)
        requested = patch.model_fields_set

        if invoice.status in LOCKED_STATUSES:
            blocked = requested - FREE_TEXT_FIELDS
            if blocked:
                raise StateError(
                    f"Invoice {invoice.id} is {invoice.status.value}; cannot change "
                    f"{', '.join(sorted(blocked))}."
                )

        original_status = invoice.status
        old_items = invoice.line_items()
        old_meta = {
            "discount_amount": invoice.discount_amount,
            "late_fee": invoice.late_fee,
            "note": invoice.note,
        }

        await self._apply_patch(ctx, invoice, patch, requested)

        history = None
        if original_status in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE):
            items_diff = diff.diff_items(old_items, invoice.line_items())
            meta_diff = diff.diff_meta(
                old_meta,
                {
                    "discount_amount": invoice.discount_amount,
                    "late_fee": invoice.late_fee,
                    "note": invoice.note,
                },
            )
            if not diff.is_empty(items_diff, meta_diff):
                history = InvoiceHistory(
                    invoice_id=invoice.id,
                    action=f"update_{original_status.value}_invoice",
                    items_diff=items_diff,
                    meta_diff=meta_diff,
                    updated_by_id=ctx.actor_id,
                )

        invoice.updated_by_id = ctx.actor_id
        try:
            async with in_transaction() as conn:
                await invoice.save(using_db=conn)
                if history:
                    await history.save(using_db=conn)
        except IntegrityError as e:
            existing = await self._invoice_repo.find_open_for_period(
                invoice.landlord_id, invoice.room_id, invoice.period
            )
            raise ConflictError(
                f"Room {invoice.room_id} already has an invoice for {invoice.period}.",
                existing_id=existing.id if existing else None,
            ) from e

        logger.info(f"Updated invoice {invoice.invoice_number}.")
        return invoice

    async def _apply_patch(
        self,
        ctx: ActorContext,
        invoice: Invoice,
        patch: InvoicePatch,
        requested: set[str],
    ) -> None:
        for name in FREE_TEXT_FIELDS & requested:
            setattr(invoice, name, getattr(patch, name))

        if "status" in requested and patch.status != invoice.status:
            if patch.status not in STATUS_TRANSITIONS[invoice.status]:
                raise StateError(
                    f"Cannot move invoice from {invoice.status.value} to "
                    f"{patch.status.value if patch.status else None}."
                )
            invoice.status = patch.status
            if patch.status == InvoiceStatus.CANCELLED:
                invoice.cancelled_at = utcnow()
            elif patch.status == InvoiceStatus.SENT:
                invoice.sent_at = utcnow()
            invoice.sync_period_guard()

        if "period_month" in requested or "period_year" in requested:
            period = Period.of(
                patch.period_month
                if "period_month" in requested
                else invoice.period_month,
                patch.period_year if "period_year" in requested else invoice.period_year,
                self._min_period_year,
            )
            invoice.period_month, invoice.period_year = period.month, period.year

        if "room_id" in requested and patch.room_id != invoice.room_id:
            room = await self._room_repo.get_live(patch.room_id)
            if not room:
                raise NotFoundError(f"Room {patch.room_id} not found.")
            ctx.ensure_building(room.building)
            invoice.room_id = room.id
            invoice.building_id = room.building.id
        if "building_id" in requested and patch.building_id != invoice.building_id:
            raise ValidationError("An invoice's building always follows its room.")
        if "tenant_id" in requested and patch.tenant_id:
            invoice.tenant_id = patch.tenant_id
        if "contract_id" in requested and patch.contract_id:
            invoice.contract_id = patch.contract_id
        if "due_date" in requested:
            invoice.due_date = patch.due_date

        if "items" in requested:
            if not patch.items:
                raise ValidationError("An invoice needs at least one line item.")
            invoice.set_line_items([item.to_line_item() for item in patch.items])
        if "discount_amount" in requested:
            invoice.discount_amount = patch.discount_amount or Decimal("0")
        if "late_fee" in requested:
            invoice.late_fee = patch.late_fee or Decimal("0")
        invoice.recalculate_totals()

    async def dispatch(self, ctx: ActorContext, invoice_id: UUID) -> Invoice:
        """
        Emails an invoice to its tenant.

        The outcome is recorded on the invoice; delivery failures are not
        raised. A draft that was delivered becomes sent.
        """
        if self._notifier is None:
            raise StateError("No notifier is configured for invoice dispatch.")
        invoice = await self.get_invoice(ctx, invoice_id)
        if invoice.status in UNSENDABLE_STATUSES:
            raise StateError(
                f"Invoice {invoice.id} is {invoice.status.value} and cannot be sent."
            )

        await invoice.fetch_related("room")
        contract = await self._contract_repo.get(invoice.contract_id)
        recipient = invoice.email_to_override or (contract and contract.tenant_email)

        if not recipient:
            success, error = False, "Tenant has no email address."
        else:
            payload = invoice_context(invoice, invoice.room, invoice.building)
            payload["subject"] = f"Invoice {invoice.invoice_number}"
            payload["tenant_name"] = contract.tenant_name if contract else ""
            result = await self._notifier.send(
                recipient, payload, INVOICE_EMAIL_TEMPLATE
            )
            success, error = result.success, result.error

        now = utcnow()
        if success:
            await Invoice.filter(id=invoice.id).update(
                email_status=EmailStatus.SENT, email_sent_at=now, email_last_error=None
            )
            await Invoice.filter(id=invoice.id, status=InvoiceStatus.DRAFT).update(
                status=InvoiceStatus.SENT, sent_at=now
            )
        else:
            await Invoice.filter(id=invoice.id).update(
                email_status=EmailStatus.FAILED, email_sent_at=now, email_last_error=error
            )
            logger.warning(
                f"Dispatch of invoice {invoice.invoice_number} failed: {error}"
            )

        # The status may have moved while the email was in flight.
        await invoice.refresh_from_db()
        return invoice

    async def dispatch_drafts(
        self, ctx: ActorContext, period: Period | None = None
    ) -> BatchResult:
        """Dispatches every draft invoice the actor manages."""
        drafts = await self._invoice_repo.list_drafts(
            ctx.landlord_id, building_ids=ctx.building_ids, period=period
        )
        result = BatchResult()
        for draft in drafts:
            try:
                invoice = await self.dispatch(ctx, draft.id)
            except BillingError as e:
                result.failed(draft.id, e.message)
            except Exception as e:
                logger.error(
                    f"Dispatch of invoice {draft.id} failed: {e}", exc_info=True
                )
                result.failed(draft.id, str(e))
            else:
                if invoice.email_status == EmailStatus.SENT:
                    result.succeeded(draft.id, invoice.id)
                else:
                    result.failed(draft.id, invoice.email_last_error or "not sent")
        return result

    async def list_unpaid(self, ctx: ActorContext) -> list[Invoice]:
        return await self._invoice_repo.list_unpaid(
            ctx.landlord_id, building_ids=ctx.building_ids
        )

    async def sweep_overdue(self, now: datetime | None = None) -> int:
        """Marks sent invoices whose due date has passed as overdue."""
        now = now or utcnow()
        count = await self._invoice_repo.mark_overdue(now)
        logger.info(f"Marked {count} invoice(s) as overdue.")
        return count
