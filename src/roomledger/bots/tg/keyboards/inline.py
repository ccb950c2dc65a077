"""Inline keyboard callback data."""

from aiogram.filters.callback_data import CallbackData


class SelectBuildingCallback(CallbackData, prefix="bld"):
    """Callback data for selecting a building."""

    building_id: str


class SelectRoomCallback(CallbackData, prefix="room"):
    """Callback data for selecting a room."""

    room_id: str


class SelectPeriodCallback(CallbackData, prefix="period"):
    """Callback data for selecting a billing period."""

    action: str  # e.g., 'invoice', 'send'
    period: str  # YYYY-MM


class ReadingActionCallback(CallbackData, prefix="rdg"):
    """
    Callback data for reading actions.
    - cf: confirm
    - del: delete
    """

    action: str
    reading_id: str


class InvoiceActionCallback(CallbackData, prefix="inv"):
    """
    Callback data for invoice actions.
    - pay: mark paid in cash
    - pdf: download PDF
    """

    action: str
    invoice_id: str
