"""
Notification Service.

Proactive Telegram messages about a user's missions and badges. Sends are
rate limited per chat using the bot policy in security.yaml.

Usage:
    service = get_notification_service()
    await service.mission_completed(telegram_id, "Carbon Footprint Challenge", impact=25)
"""

import html
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from aiogram.exceptions import TelegramAPIError, TelegramNetworkError, TelegramRetryAfter

from modules.backend.core.config import get_app_config
from modules.backend.core.logging import get_logger, log_with_source
from modules.backend.core.utils import utc_now

logger = get_logger(__name__)

RATE_LIMIT_WINDOW = 60


class AlertType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


ALERT_EMOJI = {
    AlertType.INFO: "ℹ️",
    AlertType.SUCCESS: "✅",
    AlertType.WARNING: "⚠️",
    AlertType.ERROR: "❌",
}


@dataclass
class NotificationResult:
    """Result of a notification send attempt."""

    success: bool
    user_id: int
    message_id: int | None = None
    error: str | None = None
    rate_limited: bool = False
    retryable: bool = False
    timestamp: datetime = field(default_factory=utc_now)


class NotificationService:
    """
    Sends mission and badge notifications to Telegram chats.

    A failed send is reported in the result instead of raised. Network
    failures and flood waits are marked retryable so event consumers can
    hand them to their retry policy.
    """

    def __init__(self, messages_per_minute: int | None = None) -> None:
        if messages_per_minute is None:
            messages_per_minute = (
                get_app_config().security.rate_limiting.telegram_bot.messages_per_minute
            )
        self.messages_per_minute = messages_per_minute
        self._sent: dict[int, list[float]] = defaultdict(list)

    def _check_rate_limit(self, user_id: int) -> bool:
        now = time.monotonic()
        window_start = now - RATE_LIMIT_WINDOW
        self._sent[user_id] = [ts for ts in self._sent[user_id] if ts > window_start]

        if len(self._sent[user_id]) >= self.messages_per_minute:
            return False

        self._sent[user_id].append(now)
        return True

    async def send(
        self,
        user_id: int,
        text: str,
        disable_notification: bool = False,
        reply_markup: Any = None,
    ) -> NotificationResult:
        from modules.telegram.bot import get_bot

        if not self._check_rate_limit(user_id):
            log_with_source(
                logger, "telegram", "warning", "Notification rate limited", user_id=user_id,
            )
            return NotificationResult(
                success=False,
                user_id=user_id,
                rate_limited=True,
                error="Rate limit exceeded",
            )

        try:
            message = await get_bot().send_message(
                chat_id=user_id,
                text=text,
                disable_notification=disable_notification,
                reply_markup=reply_markup,
            )
        except TelegramAPIError as e:
            retryable = isinstance(e, (TelegramNetworkError, TelegramRetryAfter))
            log_with_source(
                logger,
                "telegram",
                "error",
                "Failed to send notification",
                user_id=user_id,
                error=str(e),
                retryable=retryable,
            )
            return NotificationResult(
                success=False,
                user_id=user_id,
                error=str(e),
                retryable=retryable,
            )

        log_with_source(
            logger,
            "telegram",
            "info",
            "Notification sent",
            user_id=user_id,
            message_id=message.message_id,
        )
        return NotificationResult(success=True, user_id=user_id, message_id=message.message_id)

    async def send_alert(
        self,
        user_id: int,
        title: str,
        body: str,
        alert_type: AlertType = AlertType.INFO,
        data: dict[str, Any] | None = None,
    ) -> NotificationResult:
        lines = [f"{ALERT_EMOJI[alert_type]} <b>{html.escape(title)}</b>", "", body]
        if data:
            lines.append("")
            for key, value in data.items():
                label = key.replace("_", " ").title()
                lines.append(f"<b>{label}:</b> <code>{html.escape(str(value))}</code>")
        return await self.send(user_id, "\n".join(lines))

    async def mission_completed(
        self,
        user_id: int,
        title: str,
        impact: int,
    ) -> NotificationResult:
        return await self.send_alert(
            user_id,
            "Mission completed",
            f"You finished <b>{html.escape(title)}</b> and earned a badge.",
            AlertType.SUCCESS,
            data={"impact_points": impact},
        )

    async def mission_failed(
        self,
        user_id: int,
        title: str,
        reason: str,
    ) -> NotificationResult:
        return await self.send_alert(
            user_id,
            "Mission failed",
            f"<b>{html.escape(title)}</b> could not be completed.",
            AlertType.WARNING,
            data={"reason": reason},
        )

    async def badge_minted(
        self,
        user_id: int,
        rarity: str,
        token_id: str | None,
        transaction_hash: str | None,
    ) -> NotificationResult:
        return await self.send_alert(
            user_id,
            "Badge minted",
            f"Your {html.escape(rarity)} badge is now a soulbound token.",
            AlertType.SUCCESS,
            data={"token_id": token_id, "transaction": transaction_hash},
        )


_notification_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
