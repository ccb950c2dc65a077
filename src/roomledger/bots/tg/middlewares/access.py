"""Middleware for access control."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from roomledger.config import settings
from roomledger.core.access import ActorContext

logger = logging.getLogger(__name__)


class OperatorAccessMiddleware(BaseMiddleware):
    """
    Lets only configured operators through and hands handlers the landlord
    context they act in.
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        if user is None or user.id not in settings.ADMIN_IDS:
            return None

        if not settings.BOT_LANDLORD_ID:
            logger.warning("BOT_LANDLORD_ID is not set; ignoring operator update.")
            return None

        data["actor"] = ActorContext(landlord_id=UUID(settings.BOT_LANDLORD_ID))
        return await handler(event, data)
