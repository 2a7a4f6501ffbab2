"""
Telegram Bot Services.
"""

from modules.telegram.services.notifications import (
    AlertType,
    NotificationResult,
    NotificationService,
    get_notification_service,
)

__all__ = [
    "AlertType",
    "NotificationResult",
    "NotificationService",
    "get_notification_service",
]
