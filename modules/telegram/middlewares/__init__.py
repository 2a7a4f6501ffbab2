"""
Telegram Bot Middlewares.

- LoggingMiddleware (outer, every update)
- RateLimitMiddleware (inner, messages and callback queries, per user)
"""

from typing import TYPE_CHECKING

from modules.telegram.middlewares.logging import LoggingMiddleware
from modules.telegram.middlewares.rate_limit import RateLimitMiddleware

if TYPE_CHECKING:
    from aiogram import Dispatcher

__all__ = [
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "setup_middlewares",
]


def setup_middlewares(dp: "Dispatcher") -> None:
    dp.update.outer_middleware(LoggingMiddleware())

    rate_limit = RateLimitMiddleware()
    dp.message.middleware(rate_limit)
    dp.callback_query.middleware(rate_limit)
