"""Integration tests for the InvoiceLifecycleService."""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from roomledger.core.errors import StateError, ValidationError
from roomledger.core.models import (
    EmailStatus,
    Invoice,
    InvoiceHistory,
    InvoiceStatus,
    ItemType,
    LineItemInput,
    PaymentMethod,
)
from roomledger.services.lifecycle import InvoicePatch
from roomledger.services.notifier import NotificationResult
from roomledger.services.wiring import build_services

NOW = datetime(2024, 8, 11, 9, 0, tzinfo=timezone.utc)


async def _invoice(contract, month, status, due_date, number):
    return await Invoice.create(
        landlord_id=contract.landlord_id,
        tenant_id=contract.tenant_id,
        contract_id=contract.id,
        room_id=contract.room_id,
        building_id=contract.building_id,
        period_month=month,
        period_year=2024,
        invoice_number=number,
        status=status,
        due_date=due_date,
        total_amount=Decimal("3000000"),
    )


@pytest.mark.asyncio
async def test_sweep_marks_only_sent_invoices_overdue(services, contract):
    yesterday = NOW - timedelta(days=1)
    sent = await _invoice(contract, 6, InvoiceStatus.SENT, yesterday, "INV-1")
    paid = await _invoice(contract, 5, InvoiceStatus.PAID, yesterday, "INV-2")
    draft = await _invoice(contract, 4, InvoiceStatus.DRAFT, yesterday, "INV-3")
    not_due = await _invoice(
        contract, 3, InvoiceStatus.SENT, NOW + timedelta(days=1), "INV-4"
    )

    count = await services.lifecycle.sweep_overdue(now=NOW)

    assert count == 1
    assert (await Invoice.get(id=sent.id)).status == InvoiceStatus.OVERDUE
    assert (await Invoice.get(id=paid.id)).status == InvoiceStatus.PAID
    assert (await Invoice.get(id=draft.id)).status == InvoiceStatus.DRAFT
    assert (await Invoice.get(id=not_due.id)).status == InvoiceStatus.SENT


@pytest.mark.asyncio
async def test_mark_paid_records_payment_once(services, ctx, invoice):
    paid = await services.lifecycle.mark_paid(
        ctx, invoice.id, note="Paid at the front desk"
    )

    assert paid.status == InvoiceStatus.PAID
    assert paid.paid_amount == Decimal("3325000")
    assert paid.payment_method == PaymentMethod.CASH
    assert paid.payment_note == "Paid at the front desk"
    assert paid.paid_at is not None

    with pytest.raises(StateError):
        await services.lifecycle.mark_paid(ctx, invoice.id)


@pytest.mark.asyncio
async def test_mark_paid_rejects_negative_amount(services, ctx, invoice):
    with pytest.raises(ValidationError):
        await services.lifecycle.mark_paid(
            ctx, invoice.id, paid_amount=Decimal("-1")
        )
    assert (await Invoice.get(id=invoice.id)).status == InvoiceStatus.DRAFT


@pytest.mark.asyncio
async def test_cancelled_invoice_cannot_be_paid(services, ctx, invoice):
    await services.lifecycle.update(
        ctx, invoice.id, InvoicePatch(status=InvoiceStatus.CANCELLED)
    )

    with pytest.raises(StateError):
        await services.lifecycle.mark_paid(ctx, invoice.id)


@pytest.mark.asyncio
async def test_paid_invoice_rejects_whole_patch(services, ctx, invoice):
    await services.lifecycle.mark_paid(ctx, invoice.id)

    with pytest.raises(StateError):
        await services.lifecycle.update(
            ctx,
            invoice.id,
            InvoicePatch(note="late remark", discount_amount=Decimal("1000")),
        )

    stored = await Invoice.get(id=invoice.id)
    assert stored.note is None
    assert stored.discount_amount == Decimal("0")
    assert stored.total_amount == Decimal("3325000")


@pytest.mark.asyncio
async def test_paid_invoice_accepts_free_text(services, ctx, invoice):
    await services.lifecycle.mark_paid(ctx, invoice.id)

    updated = await services.lifecycle.update(
        ctx,
        invoice.id,
        InvoicePatch(note="Thank you", internal_note="cash", payment_ref="R-77"),
    )

    assert updated.status == InvoiceStatus.PAID
    stored = await Invoice.get(id=invoice.id)
    assert (stored.note, stored.internal_note, stored.payment_ref) == (
        "Thank you",
        "cash",
        "R-77",
    )


@pytest.mark.asyncio
async def test_cancel_releases_period_for_regeneration(services, ctx, room, invoice):
    cancelled = await services.lifecycle.update(
        ctx, invoice.id, InvoicePatch(status=InvoiceStatus.CANCELLED)
    )
    assert cancelled.cancelled_at is not None
    assert cancelled.period_guard is None

    replacement = await services.billing.generate(ctx, room.id, 7, 2024)

    assert replacement.id != invoice.id
    assert replacement.invoice_number == "INV-202407-002"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "target", [InvoiceStatus.OVERDUE, InvoiceStatus.PAID, InvoiceStatus.REPLACED]
)
async def test_draft_rejects_invalid_transitions(services, ctx, invoice, target):
    with pytest.raises(StateError):
        await services.lifecycle.update(ctx, invoice.id, InvoicePatch(status=target))
    assert (await Invoice.get(id=invoice.id)).status == InvoiceStatus.DRAFT


@pytest.mark.asyncio
async def test_draft_edit_recalculates_without_history(services, ctx, invoice):
    updated = await services.lifecycle.update(
        ctx,
        invoice.id,
        InvoicePatch(
            items=[
                LineItemInput(
                    type=ItemType.RENT, label="Room rent", amount=Decimal("2800000")
                )
            ],
            late_fee=Decimal("50000"),
        ),
    )

    assert updated.subtotal == Decimal("2800000")
    assert updated.total_amount == Decimal("2850000")
    assert await InvoiceHistory.filter(invoice_id=invoice.id).count() == 0


@pytest.mark.asyncio
async def test_sent_invoice_edit_is_recorded(services, ctx, invoice):
    await services.lifecycle.update(
        ctx, invoice.id, InvoicePatch(status=InvoiceStatus.SENT)
    )

    updated = await services.lifecycle.update(
        ctx, invoice.id, InvoicePatch(discount_amount=Decimal("100000"))
    )

    assert updated.total_amount == Decimal("3225000")
    history = await InvoiceHistory.filter(invoice_id=invoice.id)
    assert len(history) == 1
    assert history[0].action == "update_sent_invoice"
    assert history[0].updated_by_id == ctx.actor_id
    change = history[0].meta_diff["discount_amount"]
    assert Decimal(change["after"]) == Decimal("100000")
    assert not any(history[0].items_diff.values())


@pytest.mark.asyncio
async def test_sent_invoice_noop_edit_is_not_recorded(services, ctx, invoice):
    await services.lifecycle.update(
        ctx, invoice.id, InvoicePatch(status=InvoiceStatus.SENT)
    )

    await services.lifecycle.update(ctx, invoice.id, InvoicePatch(late_fee=0))

    assert await InvoiceHistory.filter(invoice_id=invoice.id).count() == 0


@pytest.mark.asyncio
async def test_update_rejects_bad_items_and_building(services, ctx, invoice):
    with pytest.raises(ValidationError):
        await services.lifecycle.update(ctx, invoice.id, InvoicePatch(items=[]))
    with pytest.raises(ValidationError):
        await services.lifecycle.update(
            ctx, invoice.id, InvoicePatch(building_id=uuid.uuid4())
        )

    stored = await Invoice.get(id=invoice.id)
    assert stored.total_amount == Decimal("3325000")


@pytest.mark.asyncio
async def test_dispatch_requires_notifier(services, ctx, invoice):
    with pytest.raises(StateError):
        await services.lifecycle.dispatch(ctx, invoice.id)


@pytest.mark.asyncio
async def test_dispatch_drafts_sends_each_draft(
    notifying_services, notifier, ctx, invoice
):
    result = await notifying_services.lifecycle.dispatch_drafts(ctx)

    assert result.success_count == 1
    stored = await Invoice.get(id=invoice.id)
    assert stored.status == InvoiceStatus.SENT
    assert stored.email_status == EmailStatus.SENT
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_dispatch_without_recipient_is_recorded(
    notifying_services, notifier, ctx, contract, invoice
):
    contract.tenant_email = None
    await contract.save()

    dispatched = await notifying_services.lifecycle.dispatch(ctx, invoice.id)

    assert dispatched.status == InvoiceStatus.DRAFT
    assert dispatched.email_status == EmailStatus.FAILED
    assert "no email" in dispatched.email_last_error
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_email_override_takes_precedence(
    notifying_services, notifier, ctx, invoice
):
    await Invoice.filter(id=invoice.id).update(email_to_override="billing@tenant.test")

    await notifying_services.lifecycle.dispatch(ctx, invoice.id)

    assert notifier.sent[0][0] == "billing@tenant.test"


@pytest.mark.asyncio
async def test_paid_invoice_cannot_be_dispatched(
    notifying_services, ctx, invoice
):
    await notifying_services.lifecycle.mark_paid(ctx, invoice.id)

    with pytest.raises(StateError):
        await notifying_services.lifecycle.dispatch(ctx, invoice.id)


@pytest.mark.asyncio
async def test_list_unpaid_returns_sent_and_overdue(services, ctx, contract):
    due = NOW - timedelta(days=3)
    overdue = await _invoice(contract, 5, InvoiceStatus.OVERDUE, due, "INV-1")
    sent = await _invoice(contract, 6, InvoiceStatus.SENT, NOW, "INV-2")
    await _invoice(contract, 4, InvoiceStatus.PAID, due, "INV-3")
    await _invoice(contract, 3, InvoiceStatus.DRAFT, due, "INV-4")

    unpaid = await services.lifecycle.list_unpaid(ctx)

    assert [i.id for i in unpaid] == [overdue.id, sent.id]


class PayingNotifier:
    """Settles the invoice while its email is being delivered."""

    def __init__(self, ctx, invoice_id, success=True):
        self.ctx = ctx
        self.invoice_id = invoice_id
        self.success = success
        self.lifecycle = None

    async def send(self, recipient, payload, template_kind):
        await self.lifecycle.mark_paid(self.ctx, self.invoice_id)
        if self.success:
            return NotificationResult(success=True)
        return NotificationResult(success=False, error="mailbox full")


@pytest.mark.asyncio
@pytest.mark.parametrize("delivered", [True, False])
async def test_payment_during_dispatch_stays_paid(settings, ctx, invoice, delivered):
    notifier = PayingNotifier(ctx, invoice.id, success=delivered)
    services = build_services(settings, notifier=notifier)
    notifier.lifecycle = services.lifecycle

    dispatched = await services.lifecycle.dispatch(ctx, invoice.id)

    stored = await Invoice.get(id=invoice.id)
    assert stored.status == InvoiceStatus.PAID
    assert stored.paid_amount == Decimal("3325000")
    assert stored.sent_at is None
    assert stored.email_status == (
        EmailStatus.SENT if delivered else EmailStatus.FAILED
    )
    assert dispatched.status == InvoiceStatus.PAID

    swept = await services.lifecycle.sweep_overdue(now=NOW + timedelta(days=60))
    assert swept == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "patch",
    [
        InvoicePatch(period_month=0),
        InvoicePatch(period_month=13),
        InvoicePatch(period_year=0),
        InvoicePatch(period_year=1999),
        InvoicePatch(period_month=None),
    ],
)
async def test_update_rejects_invalid_period(services, ctx, invoice, patch):
    with pytest.raises(ValidationError):
        await services.lifecycle.update(ctx, invoice.id, patch)

    stored = await Invoice.get(id=invoice.id)
    assert (stored.period_month, stored.period_year) == (7, 2024)
