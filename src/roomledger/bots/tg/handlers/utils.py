from __future__ import annotations

from datetime import date

from aiogram.types import InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

from roomledger.bots.tg.keyboards.inline import SelectPeriodCallback
from roomledger.core.dates import Period, format_period_for_display
from roomledger.core.errors import BillingError


def get_period_keyboard(action: str) -> InlineKeyboardBuilder:
    """
    Builds an inline keyboard with buttons for the last 6 months.

    Args:
        action: The action to be encoded in the callback data (e.g., 'invoice').

    Returns:
        An InlineKeyboardBuilder with the period buttons.
    """
    builder = InlineKeyboardBuilder()
    current = Period.from_date(date.today())

    for i in range(6):
        period = current.shift(-i)
        callback_data = SelectPeriodCallback(action=action, period=str(period)).pack()
        builder.row(
            InlineKeyboardButton(
                text=format_period_for_display(period), callback_data=callback_data
            )
        )

    return builder


def describe_error(error: BillingError) -> str:
    return f"⚠️ {error.message}"
