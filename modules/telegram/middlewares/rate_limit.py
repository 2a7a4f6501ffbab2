"""
Rate Limiting Middleware.

Per-user sliding window over messages and callback queries. The limit is
security.rate_limiting.telegram_bot.messages_per_minute.
"""

import time
from collections import defaultdict
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from modules.backend.core.config import get_app_config
from modules.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseMiddleware):
    """Drops updates from users over the limit and tells them how long to wait."""

    def __init__(self, rate_limit: int | None = None, rate_window: int = WINDOW_SECONDS) -> None:
        if rate_limit is None:
            rate_limit = get_app_config().security.rate_limiting.telegram_bot.messages_per_minute
        self.rate_limit = rate_limit
        self.rate_window = rate_window
        self._requests: dict[int, list[float]] = defaultdict(list)

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user_id = self._get_user_id(event)
        if user_id is None:
            return await handler(event, data)

        now = time.monotonic()
        retry_after = self.retry_after(user_id, now)
        if retry_after:
            log_with_source(
                logger,
                "telegram",
                "warning",
                "Bot rate limit exceeded",
                user_id=user_id,
                rate_limit=self.rate_limit,
            )
            await self._notify(event, retry_after)
            return None

        self._requests[user_id].append(now)
        return await handler(event, data)

    def retry_after(self, user_id: int, now: float) -> int:
        """Seconds until the user may send again; 0 when under the limit."""
        cutoff = now - self.rate_window
        recent = [ts for ts in self._requests[user_id] if ts > cutoff]
        self._requests[user_id] = recent

        if len(recent) < self.rate_limit:
            return 0
        return int(self.rate_window - (now - min(recent))) + 1

    @staticmethod
    def _get_user_id(event: TelegramObject) -> int | None:
        if isinstance(event, (Message, CallbackQuery)) and event.from_user:
            return event.from_user.id
        return None

    @staticmethod
    async def _notify(event: TelegramObject, retry_after: int) -> None:
        text = f"⏳ Slow down a little. Try again in {retry_after} seconds."
        if isinstance(event, Message):
            await event.answer(text)
        elif isinstance(event, CallbackQuery):
            await event.answer(text, show_alert=True)
