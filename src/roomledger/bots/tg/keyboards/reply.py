"""Reply keyboard builders."""

from aiogram.types import KeyboardButton, ReplyKeyboardMarkup
from aiogram.utils.keyboard import ReplyKeyboardBuilder

ENTER_READINGS = "✍️ Enter readings"
CONFIRM_READINGS = "✅ Confirm readings"
GENERATE_INVOICES = "📄 Generate invoices"
SEND_INVOICES = "📨 Send draft invoices"
UNPAID_INVOICES = "💰 Unpaid invoices"


def get_main_menu() -> ReplyKeyboardMarkup:
    """Builds the main menu reply keyboard."""
    builder = ReplyKeyboardBuilder()
    builder.row(
        KeyboardButton(text=ENTER_READINGS),
        KeyboardButton(text=CONFIRM_READINGS),
    )
    builder.row(
        KeyboardButton(text=GENERATE_INVOICES),
        KeyboardButton(text=SEND_INVOICES),
    )
    builder.row(KeyboardButton(text=UNPAID_INVOICES))
    return builder.as_markup(resize_keyboard=True)
