"""Handlers for invoice generation, dispatch and payment."""

from __future__ import annotations

import tempfile
from uuid import UUID

from aiogram import F, Router
from aiogram.types import CallbackQuery, FSInputFile, InlineKeyboardButton, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder

from roomledger.bots.tg.handlers.utils import describe_error, get_period_keyboard
from roomledger.bots.tg.keyboards.inline import (
    InvoiceActionCallback,
    SelectPeriodCallback,
)
from roomledger.bots.tg.keyboards.reply import (
    GENERATE_INVOICES,
    SEND_INVOICES,
    UNPAID_INVOICES,
)
from roomledger.bots.tg.middlewares.access import OperatorAccessMiddleware
from roomledger.core.access import ActorContext
from roomledger.core.dates import Period, format_period_for_display
from roomledger.core.errors import BillingError
from roomledger.core.repositories.building import BuildingRepository
from roomledger.services.export import format_money
from roomledger.services.wiring import Services

router = Router(name=__name__)

router.message.middleware(OperatorAccessMiddleware())
router.callback_query.middleware(OperatorAccessMiddleware())


@router.message(F.text == GENERATE_INVOICES)
async def handle_invoice_command(message: Message):
    """Starts the invoice generation process by showing recent months."""
    builder = get_period_keyboard("invoice")
    await message.answer(
        "Select the billing period:", reply_markup=builder.as_markup()
    )


@router.message(F.text == SEND_INVOICES)
async def handle_send_command(message: Message):
    builder = get_period_keyboard("send")
    await message.answer(
        "Send draft invoices of which period?", reply_markup=builder.as_markup()
    )


@router.callback_query(SelectPeriodCallback.filter(F.action == "invoice"))
async def handle_period_for_invoice(
    query: CallbackQuery,
    callback_data: SelectPeriodCallback,
    actor: ActorContext,
    services: Services,
):
    """
    Generates invoices for every rented room of the landlord's buildings.
    """
    if not isinstance(query.message, Message):
        return

    await query.answer()

    try:
        period = Period.parse(callback_data.period)
    except BillingError as e:
        await query.message.edit_text(describe_error(e))
        return

    buildings = await BuildingRepository().list_operational(actor.landlord_id)
    buildings = [b for b in buildings if actor.can_manage(b)]
    if not buildings:
        await query.message.edit_text("No active buildings found.")
        return

    await query.message.edit_text(
        f"Generating invoices for {format_period_for_display(period)} "
        f"in {len(buildings)} building(s)..."
    )

    for building in buildings:
        try:
            result = await services.billing.generate_for_building(
                actor, building.id, period.month, period.year
            )
        except BillingError as e:
            await query.message.answer(f"<b>{building.name}</b>: {e.message}")
            continue

        lines = [
            f"<b>{building.name}</b>: {result.success_count} generated, "
            f"{result.skipped_count} already invoiced, {result.failure_count} failed."
        ]
        lines.extend(
            f"  • {item.error}"
            for item in result.items
            if not item.ok and not item.skipped
        )
        await query.message.answer("\n".join(lines))


@router.callback_query(SelectPeriodCallback.filter(F.action == "send"))
async def handle_period_for_send(
    query: CallbackQuery,
    callback_data: SelectPeriodCallback,
    actor: ActorContext,
    services: Services,
):
    if not isinstance(query.message, Message):
        return
    await query.answer()

    result = await services.lifecycle.dispatch_drafts(
        actor, Period.parse(callback_data.period)
    )
    if not result.items:
        await query.message.edit_text("There are no draft invoices for this period.")
        return
    await query.message.edit_text(
        f"📨 Sent {result.success_count} invoice(s), "
        f"{result.failure_count} could not be delivered."
    )


@router.message(F.text == UNPAID_INVOICES)
async def handle_unpaid_command(
    message: Message, actor: ActorContext, services: Services
):
    """Lists sent and overdue invoices with payment actions."""
    invoices = await services.lifecycle.list_unpaid(actor)
    if not invoices:
        await message.answer("All invoices are paid. 🎉")
        return

    for invoice in invoices:
        builder = InlineKeyboardBuilder()
        builder.add(
            InlineKeyboardButton(
                text="💵 Paid in cash",
                callback_data=InvoiceActionCallback(
                    action="pay", invoice_id=str(invoice.id)
                ).pack(),
            )
        )
        builder.add(
            InlineKeyboardButton(
                text="📄 PDF",
                callback_data=InvoiceActionCallback(
                    action="pdf", invoice_id=str(invoice.id)
                ).pack(),
            )
        )
        await message.answer(
            f"<b>{invoice.invoice_number}</b> - {invoice.room} "
            f"({invoice.status.value})\n"
            f"Total: <b>{format_money(invoice.total_amount)} {invoice.currency}</b>",
            reply_markup=builder.as_markup(),
        )


@router.callback_query(InvoiceActionCallback.filter(F.action == "pay"))
async def handle_mark_paid(
    query: CallbackQuery,
    callback_data: InvoiceActionCallback,
    actor: ActorContext,
    services: Services,
):
    if not isinstance(query.message, Message):
        return
    await query.answer()
    try:
        invoice = await services.payments.apply_manual_payment(
            actor, UUID(callback_data.invoice_id)
        )
    except BillingError as e:
        await query.message.answer(describe_error(e))
        return
    await query.message.edit_text(
        f"✅ Invoice <b>{invoice.invoice_number}</b> marked as paid."
    )


@router.callback_query(InvoiceActionCallback.filter(F.action == "pdf"))
async def handle_invoice_pdf(
    query: CallbackQuery,
    callback_data: InvoiceActionCallback,
    actor: ActorContext,
    services: Services,
):
    if not isinstance(query.message, Message):
        return
    await query.answer()
    try:
        invoice = await services.lifecycle.get_invoice(
            actor, UUID(callback_data.invoice_id)
        )
        with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as temp_file:
            output_path = await services.export.generate_pdf_invoice(
                invoice, temp_file.name
            )
    except BillingError as e:
        await query.message.answer(describe_error(e))
        return
    except Exception as e:
        await query.message.answer(f"❌ Could not render the invoice: {e}")
        return
    await query.message.answer_document(
        FSInputFile(output_path), caption=f"Invoice {invoice.invoice_number}"
    )
