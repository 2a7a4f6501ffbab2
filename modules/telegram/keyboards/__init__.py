"""
Keyboard Builders.

Inline keyboards that launch the Mini App through WebAppInfo buttons.
"""

from modules.telegram.keyboards.common import (
    get_main_menu_keyboard,
    get_mini_app_keyboard,
    get_mini_app_url,
)

__all__ = [
    "get_main_menu_keyboard",
    "get_mini_app_keyboard",
    "get_mini_app_url",
]
