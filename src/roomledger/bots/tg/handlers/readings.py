"""Handlers for the reading entry process (FSM)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from aiogram import F, Router
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardButton, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder

from roomledger.bots.tg.handlers.utils import describe_error
from roomledger.bots.tg.keyboards.inline import (
    ReadingActionCallback,
    SelectBuildingCallback,
    SelectRoomCallback,
)
from roomledger.bots.tg.keyboards.reply import CONFIRM_READINGS, ENTER_READINGS
from roomledger.bots.tg.middlewares.access import OperatorAccessMiddleware
from roomledger.bots.tg.states import ReadingEntry
from roomledger.core.access import ActorContext
from roomledger.core.dates import Period, format_period_for_display
from roomledger.core.errors import BillingError
from roomledger.core.models import ReadingStatus
from roomledger.core.repositories.building import BuildingRepository
from roomledger.core.repositories.room import RoomRepository
from roomledger.services.readings import ReadingInput
from roomledger.services.wiring import Services

router = Router(name=__name__)

router.message.middleware(OperatorAccessMiddleware())
router.callback_query.middleware(OperatorAccessMiddleware())


def _parse_index(text: str | None) -> Decimal | None:
    try:
        value = Decimal((text or "").replace(",", "."))
    except InvalidOperation:
        return None
    return value if value >= 0 else None


@router.message(F.text == ENTER_READINGS)
async def handle_readings_command(message: Message, actor: ActorContext) -> None:
    """Starts the reading entry process by showing a list of buildings."""
    buildings = await BuildingRepository().list_operational(actor.landlord_id)
    buildings = [b for b in buildings if actor.can_manage(b)]
    if not buildings:
        await message.answer("No active buildings found.")
        return

    builder = InlineKeyboardBuilder()
    for building in buildings:
        builder.row(
            InlineKeyboardButton(
                text=building.name,
                callback_data=SelectBuildingCallback(
                    building_id=str(building.id)
                ).pack(),
            )
        )
    await message.answer("Select a building:", reply_markup=builder.as_markup())


@router.callback_query(SelectBuildingCallback.filter())
async def handle_building_selection(
    query: CallbackQuery, callback_data: SelectBuildingCallback
) -> None:
    """Shows the rented rooms of the selected building."""
    if not isinstance(query.message, Message):
        return

    rooms = await RoomRepository().list_rented(UUID(callback_data.building_id))
    if not rooms:
        await query.message.edit_text("This building has no rented rooms.")
        return

    builder = InlineKeyboardBuilder()
    for room in rooms:
        builder.row(
            InlineKeyboardButton(
                text=str(room),
                callback_data=SelectRoomCallback(room_id=str(room.id)).pack(),
            )
        )
    await query.message.edit_text("Select a room:", reply_markup=builder.as_markup())


@router.callback_query(SelectRoomCallback.filter())
async def handle_room_selection(
    query: CallbackQuery, callback_data: SelectRoomCallback, state: FSMContext
) -> None:
    if not isinstance(query.message, Message):
        return

    room = await RoomRepository().get_live(UUID(callback_data.room_id))
    if not room:
        await query.message.edit_text("Room not found.")
        return

    period = Period.from_date(date.today())
    await state.update_data(
        room_id=str(room.id), room_number=room.number, period=str(period)
    )
    await state.set_state(ReadingEntry.enter_electricity)
    await query.message.edit_text(
        f"{room} - <b>{format_period_for_display(period)}</b>\n"
        f"Last electricity index: <b>{room.e_baseline_index:.0f}</b>\n\n"
        "Enter the current electricity index:"
    )


@router.message(ReadingEntry.enter_electricity)
async def handle_electricity_value(message: Message, state: FSMContext) -> None:
    value = _parse_index(message.text)
    if value is None:
        await message.answer("Invalid format. Please enter a non-negative number.")
        return

    await state.update_data(e_current_index=str(value))
    await state.set_state(ReadingEntry.enter_water)
    await message.answer("Enter the current water index:")


@router.message(ReadingEntry.enter_water)
async def handle_water_value(message: Message, state: FSMContext) -> None:
    """Shows the entered values for a final check."""
    value = _parse_index(message.text)
    if value is None:
        await message.answer("Invalid format. Please enter a non-negative number.")
        return

    await state.update_data(w_current_index=str(value))
    data = await state.get_data()

    text_lines = [
        "<b>Check the entered data:</b>",
        f"Room: <b>{data['room_number']}</b>",
        f"Period: <b>{format_period_for_display(Period.parse(data['period']))}</b>",
        f"Electricity: <b>{data['e_current_index']}</b>",
        f"Water: <b>{data['w_current_index']}</b>",
        "\nIs everything correct?",
    ]
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(text="✅ Save", callback_data="confirm"))
    builder.add(InlineKeyboardButton(text="❌ Cancel", callback_data="cancel"))

    await message.answer("\n".join(text_lines), reply_markup=builder.as_markup())
    await state.set_state(ReadingEntry.confirm_entry)


@router.callback_query(ReadingEntry.confirm_entry, F.data == "confirm")
async def handle_confirmation(
    query: CallbackQuery, state: FSMContext, actor: ActorContext, services: Services
) -> None:
    """Saves the entered reading as a draft."""
    if not isinstance(query.message, Message):
        return

    data = await state.get_data()
    await state.clear()
    period = Period.parse(data["period"])
    try:
        reading = await services.readings.create_reading(
            actor,
            ReadingInput(
                room_id=UUID(data["room_id"]),
                period_month=period.month,
                period_year=period.year,
                e_current_index=Decimal(data["e_current_index"]),
                w_current_index=Decimal(data["w_current_index"]),
            ),
        )
    except BillingError as e:
        await query.message.edit_text(describe_error(e))
        return

    builder = InlineKeyboardBuilder()
    builder.add(
        InlineKeyboardButton(
            text="✅ Confirm now",
            callback_data=ReadingActionCallback(
                action="cf", reading_id=str(reading.id)
            ).pack(),
        )
    )
    await query.message.edit_text(
        f"✅ Draft reading saved.\n"
        f"Electricity: {reading.e_consumption:.0f} units, {reading.e_amount:,.0f}\n"
        f"Water: {reading.w_consumption:.0f} units, {reading.w_amount:,.0f}",
        reply_markup=builder.as_markup(),
    )


@router.callback_query(ReadingEntry.confirm_entry, F.data == "cancel")
async def handle_cancellation(query: CallbackQuery, state: FSMContext) -> None:
    """Cancels the reading entry process."""
    await state.clear()
    if not isinstance(query.message, Message):
        return
    await query.message.edit_text("Reading entry cancelled.")


@router.message(F.text == CONFIRM_READINGS)
async def handle_list_drafts(
    message: Message, actor: ActorContext, services: Services
) -> None:
    """Lists draft readings waiting for confirmation."""
    drafts = await services.readings.list_readings(actor, status=ReadingStatus.DRAFT)
    if not drafts:
        await message.answer("There are no draft readings.")
        return

    builder = InlineKeyboardBuilder()
    for reading in drafts:
        await reading.fetch_related("room")
        builder.row(
            InlineKeyboardButton(
                text=f"{reading.room} - {format_period_for_display(reading.period)}",
                callback_data=ReadingActionCallback(
                    action="cf", reading_id=str(reading.id)
                ).pack(),
            )
        )
    await message.answer(
        "Tap a reading to confirm it:", reply_markup=builder.as_markup()
    )


@router.callback_query(ReadingActionCallback.filter(F.action == "cf"))
async def handle_confirm_reading(
    query: CallbackQuery,
    callback_data: ReadingActionCallback,
    actor: ActorContext,
    services: Services,
) -> None:
    if not isinstance(query.message, Message):
        return
    await query.answer()
    try:
        reading = await services.readings.confirm(actor, UUID(callback_data.reading_id))
    except BillingError as e:
        await query.message.answer(describe_error(e))
        return
    await query.message.answer(
        f"✅ Reading for {format_period_for_display(reading.period)} confirmed."
    )
