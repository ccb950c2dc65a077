"""Telegram front end for operators: reading entry and invoice runs."""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.types import BotCommand
from tortoise import Tortoise

from roomledger.bots.tg.handlers import common, invoices, readings
from roomledger.config import settings
from roomledger.core.db import TORTOISE_ORM
from roomledger.services.wiring import build_notifier, build_services

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="start", description="Open the main menu"),
    BotCommand(command="help", description="What this bot does"),
]


async def on_startup(dispatcher: Dispatcher, bot: Bot):
    if not settings.ADMIN_IDS or not settings.BOT_LANDLORD_ID:
        logger.warning(
            "ADMIN_IDS or BOT_LANDLORD_ID is empty; every update will be ignored."
        )

    await Tortoise.init(config=TORTOISE_ORM)
    logger.info("Database initialized.")

    notifier = build_notifier(settings)
    if notifier is None:
        logger.info("SMTP_HOST is not set; invoices will stay as drafts.")
    dispatcher["services"] = build_services(settings, notifier)

    await bot.set_my_commands(BOT_COMMANDS)
    await bot.delete_webhook(drop_pending_updates=True)
    logger.info("Bot started.")


async def on_shutdown(bot: Bot):
    await Tortoise.close_connections()
    await bot.session.close()
    logger.info("Connections closed.")


async def main():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode="HTML"),
    )
    dp = Dispatcher()
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    for module in (common, readings, invoices):
        dp.include_router(module.router)

    await dp.start_polling(bot, dispatcher=dp)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Bot stopped manually.")
