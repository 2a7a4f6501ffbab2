"""
Common Handlers.

/start opens the Mini App, /help lists commands, /badges lists the
badges the user has earned.
"""

import html

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from modules.backend.core.database import get_session
from modules.backend.core.logging import get_logger, log_with_source
from modules.backend.repositories.user import UserRepository
from modules.backend.services.badge import BadgeService
from modules.telegram.keyboards.common import get_main_menu_keyboard, get_mini_app_keyboard

logger = get_logger(__name__)

router = Router(name="common")

HELP_TEXT = (
    "<b>📚 Eco Touch commands</b>\n\n"
    "/start - Open the Mini App\n"
    "/badges - Show the badges you have earned\n"
    "/help - Show this help message\n\n"
    "Missions, donations and petitions all happen inside the Mini App."
)

BADGE_EMOJI = {
    "bronze": "🥉",
    "silver": "🥈",
    "gold": "🥇",
    "platinum": "💎",
}


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    """Welcome the user and offer the Mini App."""
    name = message.from_user.first_name if message.from_user else "there"
    await message.answer(
        f"👋 Welcome, <b>{html.escape(name)}</b>!\n\n"
        "Complete impact missions (carbon offsets, donations, petitions), "
        "earn badges and mint them as soulbound tokens.",
        reply_markup=get_main_menu_keyboard(),
    )
    log_with_source(
        logger,
        "telegram",
        "info",
        "User started bot",
        user_id=message.from_user.id if message.from_user else None,
    )


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("badges"))
async def cmd_badges(message: Message) -> None:
    """List the caller's badges, newest first."""
    if message.from_user is None:
        return

    async with get_session() as session:
        user = await UserRepository(session).get_by_telegram_id(message.from_user.id)
        badges = await BadgeService(session).list_badges(user) if user else []

    if not badges:
        await message.answer(
            "You have no badges yet. Complete a mission to earn your first one!",
            reply_markup=get_mini_app_keyboard("🎯 Find a mission", path="missions"),
        )
        return

    lines = [f"<b>🏅 Your badges ({len(badges)})</b>\n"]
    for badge in badges:
        emoji = BADGE_EMOJI.get(badge.level, "🏅")
        minted = " · SBT" if badge.minted else ""
        lines.append(
            f"{emoji} {html.escape(badge.mission_type.replace('_', ' ').title())} "
            f"· {badge.rarity} · {badge.impact} pts{minted}"
        )

    await message.answer(
        "\n".join(lines),
        reply_markup=get_mini_app_keyboard("🏅 View in Eco Touch", path="badges"),
    )
