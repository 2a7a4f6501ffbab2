"""
Unit tests for the /start, /help and /badges handlers.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.types import InlineKeyboardMarkup

from modules.telegram.handlers.common import HELP_TEXT, cmd_badges, cmd_help, cmd_start


def _message(telegram_id: int = 1001, first_name: str = "Mina") -> MagicMock:
    message = MagicMock()
    message.from_user = MagicMock(id=telegram_id, first_name=first_name)
    message.answer = AsyncMock()
    return message


@pytest.fixture
def handler_session(db_session):
    @asynccontextmanager
    async def _session():
        yield db_session

    with patch("modules.telegram.handlers.common.get_session", _session):
        yield db_session


class TestStartAndHelp:
    @pytest.mark.asyncio
    async def test_start_escapes_name(self):
        message = _message(first_name="<Mina>")

        await cmd_start(message)

        text = message.answer.await_args.args[0]
        assert "&lt;Mina&gt;" in text
        assert isinstance(message.answer.await_args.kwargs["reply_markup"], InlineKeyboardMarkup)

    @pytest.mark.asyncio
    async def test_help(self):
        message = _message()
        await cmd_help(message)
        message.answer.assert_awaited_once_with(HELP_TEXT)


class TestBadges:
    @pytest.mark.asyncio
    async def test_unknown_user(self, handler_session):
        message = _message(telegram_id=999)

        await cmd_badges(message)

        assert "no badges yet" in message.answer.await_args.args[0]

    @pytest.mark.asyncio
    async def test_lists_badges(self, handler_session, make_user, make_mission):
        from modules.backend.services.badge import BadgeService

        user = await make_user(telegram_id=1001)
        mission = await make_mission(user, status="completed", type="carbon_offset", impact=60)
        await BadgeService(handler_session, sbt=MagicMock()).create_badge_for_mission(mission, user)
        message = _message(telegram_id=1001)

        await cmd_badges(message)

        text = message.answer.await_args.args[0]
        assert "Your badges (1)" in text
        assert "🥇 Carbon Offset · Platinum · 60 pts" in text
        assert "SBT" not in text
