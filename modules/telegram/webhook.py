"""
Webhook Endpoint for the Telegram Bot.
"""

import hmac
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, Response

from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.logging import get_logger, log_with_source

if TYPE_CHECKING:
    from aiogram import Bot, Dispatcher

logger = get_logger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def get_webhook_path() -> str:
    return get_app_config().application.telegram.webhook_path


def get_webhook_router(bot: "Bot", dp: "Dispatcher") -> APIRouter:
    """
    Router that feeds Telegram updates to the dispatcher.

    Requests without the configured secret token get 403.
    """
    from aiogram.types import Update

    router = APIRouter(tags=["telegram"])
    webhook_path = get_webhook_path()
    webhook_secret = get_settings().telegram_webhook_secret

    @router.post(webhook_path)
    async def telegram_webhook(request: Request) -> Response:
        if webhook_secret:
            secret_header = request.headers.get(SECRET_HEADER) or ""
            if not hmac.compare_digest(secret_header, webhook_secret):
                logger.warning(
                    "Invalid webhook secret token",
                    extra={"client_ip": request.client.host if request.client else None},
                )
                return Response(status_code=403)

        update = Update.model_validate(await request.json(), context={"bot": bot})
        try:
            await dp.feed_update(bot, update)
        except Exception as e:
            # Any non-200 makes Telegram redeliver the same update
            log_with_source(
                logger,
                "telegram",
                "error",
                "Error processing Telegram update",
                update_id=update.update_id,
                error=str(e),
            )
        return Response(status_code=200)

    @router.get(webhook_path + "/health")
    async def telegram_webhook_health() -> dict[str, Any]:
        return {"status": "healthy", "webhook_path": webhook_path}

    return router


def get_webhook_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{get_webhook_path()}"
