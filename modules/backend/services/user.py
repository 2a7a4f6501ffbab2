"""
User Service.

Keeps the local User row in step with the Telegram identity and owns the
profile screen's reads and writes.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.exceptions import ValidationError
from modules.backend.models.user import User
from modules.backend.repositories.user import UserRepository
from modules.backend.schemas.user import UserProfileUpdate
from modules.backend.services.base import BaseService

TELEGRAM_PROFILE_FIELDS = ("username", "first_name", "last_name", "language_code", "is_premium")


class UserService(BaseService):
    """Service for Telegram users and their impact stats."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)

    async def sync_telegram_user(self, telegram_user: dict[str, Any]) -> User:
        """
        Get or create the User for a verified Telegram identity.

        Profile fields are refreshed from Telegram on every call and
        last_active_at is touched.

        Args:
            telegram_user: The decoded `user` object from initData

        Returns:
            The persisted user

        Raises:
            ValidationError: If the Telegram user has no id
        """
        telegram_id = telegram_user.get("id")
        if telegram_id is None:
            raise ValidationError("Telegram user id missing")

        profile = {
            field: telegram_user[field]
            for field in TELEGRAM_PROFILE_FIELDS
            if telegram_user.get(field) is not None
        }

        user = await self.repo.get_by_telegram_id(int(telegram_id))
        if user is None:
            self._log_operation("Registering Telegram user", telegram_id=telegram_id)
            user = await self._execute_db_operation(
                "create_user",
                self.repo.create(telegram_id=int(telegram_id), **profile),
            )
        else:
            for field, value in profile.items():
                setattr(user, field, value)

        user.touch()
        await self.session.flush()
        return user

    async def get_profile(self, user_id: str) -> User:
        return await self.repo.get_by_id(user_id)

    async def update_profile(self, user: User, data: UserProfileUpdate) -> User:
        """
        Apply profile changes. Only fields present in the request are written.

        Returns:
            The updated user
        """
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            return user

        self._log_operation(
            "Updating profile",
            user_id=user.id,
            fields=list(update_data.keys()),
        )
        return await self._execute_db_operation(
            "update_profile",
            self.repo.update(user.id, **update_data),
        )

    async def record_mission_completion(self, user: User, impact: int) -> None:
        user.record_mission_completion(impact)
        await self.session.flush()
        self._log_debug(
            "Mission credited",
            user_id=user.id,
            impact=impact,
            total_impact=user.total_impact,
        )

    async def record_badge(self, user: User) -> None:
        user.record_badge()
        await self.session.flush()
