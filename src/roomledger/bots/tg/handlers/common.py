"""Common command handlers."""

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from roomledger.bots.tg.keyboards.reply import get_main_menu
from roomledger.bots.tg.middlewares.access import OperatorAccessMiddleware

router = Router(name=__name__)
router.message.middleware(OperatorAccessMiddleware())


@router.message(CommandStart())
async def handle_start(message: Message) -> None:
    await message.answer("Main menu:", reply_markup=get_main_menu())


@router.message(Command("help"))
async def handle_help(message: Message) -> None:
    """Handler for the /help command."""
    await message.answer(
        "This bot records meter readings and issues invoices for your rooms.\n\n"
        "Use the keyboard below to navigate."
    )
