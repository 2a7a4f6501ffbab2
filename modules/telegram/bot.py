"""
Bot and Dispatcher Configuration.

Lazily created so importing this module never requires a bot token.
"""

from typing import TYPE_CHECKING

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from aiogram import Bot, Dispatcher

_bot: "Bot | None" = None
_dispatcher: "Dispatcher | None" = None


def create_bot() -> "Bot":
    """
    Create the aiogram Bot with HTML parse mode.

    Raises:
        RuntimeError: If TELEGRAM_BOT_TOKEN is not configured
    """
    from aiogram import Bot
    from aiogram.client.default import DefaultBotProperties
    from aiogram.enums import ParseMode

    from modules.backend.core.config import get_settings

    token = get_settings().telegram_bot_token
    if not token:
        raise RuntimeError(
            "TELEGRAM_BOT_TOKEN not configured. Set it in config/.env"
        )

    bot = Bot(token=token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    logger.info("Telegram bot created")
    return bot


def create_dispatcher() -> "Dispatcher":
    """Create the Dispatcher with every router and middleware attached."""
    from aiogram import Dispatcher

    from modules.telegram.handlers import get_all_routers
    from modules.telegram.middlewares import setup_middlewares

    dp = Dispatcher()
    setup_middlewares(dp)
    for router in get_all_routers():
        dp.include_router(router)

    logger.info("Telegram dispatcher created")
    return dp


def get_bot() -> "Bot":
    global _bot
    if _bot is None:
        _bot = create_bot()
    return _bot


def get_dispatcher() -> "Dispatcher":
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = create_dispatcher()
    return _dispatcher


async def setup_webhook(webhook_url: str, secret_token: str) -> None:
    """Register the webhook URL with Telegram."""
    await get_bot().set_webhook(
        url=webhook_url,
        secret_token=secret_token or None,
        drop_pending_updates=True,
        allowed_updates=get_dispatcher().resolve_used_update_types(),
    )
    logger.info("Webhook configured", extra={"webhook_url": webhook_url})


async def close_bot() -> None:
    """Close the bot's HTTP session on shutdown."""
    global _bot
    if _bot is not None:
        await _bot.session.close()
        _bot = None
        logger.info("Bot session closed")
