"""
Logging Middleware.

Logs every Telegram update with source="telegram".
"""

import time
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Update

from modules.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)


def update_context(event: TelegramObject) -> dict[str, Any]:
    """Ids and command of an update, for log fields."""
    if not isinstance(event, Update):
        return {}

    context: dict[str, Any] = {
        "update_id": event.update_id,
        "update_type": event.event_type,
    }
    if event.message:
        msg = event.message
        context["chat_id"] = msg.chat.id
        if msg.from_user:
            context["user_id"] = msg.from_user.id
        if msg.text and msg.text.startswith("/"):
            context["command"] = msg.text.split()[0]
    elif event.callback_query:
        cb = event.callback_query
        context["user_id"] = cb.from_user.id
        context["callback_data"] = cb.data
    return context


class LoggingMiddleware(BaseMiddleware):
    """Logs receipt, processing time and failures of each update."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        start_time = time.perf_counter()
        context = update_context(event)
        log_with_source(logger, "telegram", "info", "Telegram update received", **context)

        try:
            result = await handler(event, data)
        except Exception as e:
            log_with_source(
                logger,
                "telegram",
                "error",
                "Telegram update processing error",
                error=str(e),
                error_type=type(e).__name__,
                elapsed_ms=round((time.perf_counter() - start_time) * 1000, 2),
                **context,
            )
            raise

        log_with_source(
            logger,
            "telegram",
            "debug",
            "Telegram update processed",
            elapsed_ms=round((time.perf_counter() - start_time) * 1000, 2),
            **context,
        )
        return result
