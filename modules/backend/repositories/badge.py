"""
Badge Repository.
"""

from sqlalchemy import select

from modules.backend.models.badge import Badge
from modules.backend.repositories.base import BaseRepository


class BadgeRepository(BaseRepository[Badge]):
    """Repository for Badge model."""

    model = Badge

    async def list_for_user(self, user_id: str) -> list[Badge]:
        result = await self.session.execute(
            select(Badge)
            .where(Badge.user_id == user_id)
            .order_by(Badge.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_mission_id(self, mission_id: str) -> Badge | None:
        result = await self.session.execute(
            select(Badge).where(Badge.mission_id == mission_id)
        )
        return result.scalar_one_or_none()
