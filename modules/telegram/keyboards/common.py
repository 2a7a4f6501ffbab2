"""
Common Keyboard Builders.
"""

from aiogram.types import InlineKeyboardMarkup, WebAppInfo
from aiogram.utils.keyboard import InlineKeyboardBuilder

from modules.backend.core.config import get_app_config


def get_mini_app_url(path: str = "") -> str:
    base = get_app_config().application.telegram.mini_app_url.rstrip("/")
    return f"{base}/{path.lstrip('/')}" if path else base


def get_mini_app_keyboard(
    text: str = "🌱 Open Eco Touch",
    path: str = "",
) -> InlineKeyboardMarkup:
    """Single inline button that opens the Mini App, optionally at a sub-page."""
    builder = InlineKeyboardBuilder()
    builder.button(text=text, web_app=WebAppInfo(url=get_mini_app_url(path)))
    return builder.as_markup()


def get_main_menu_keyboard() -> InlineKeyboardMarkup:
    """Mini App entry points shown under /start."""
    builder = InlineKeyboardBuilder()
    builder.button(text="🌱 Open Eco Touch", web_app=WebAppInfo(url=get_mini_app_url()))
    builder.button(text="🎯 Missions", web_app=WebAppInfo(url=get_mini_app_url("missions")))
    builder.button(text="🏅 Badges", web_app=WebAppInfo(url=get_mini_app_url("badges")))
    builder.adjust(1, 2)
    return builder.as_markup()
