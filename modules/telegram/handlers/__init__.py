"""
Telegram Bot Handlers.

Adding new handlers: create a Router in a new module here and add it to
get_all_routers().
"""

from aiogram import Router

from modules.telegram.handlers.common import router as common_router

__all__ = [
    "common_router",
    "get_all_routers",
]


def get_all_routers() -> list[Router]:
    return [common_router]
