"""
Mission Repository.

Data access layer for missions. All user-facing lookups are scoped to
the owning user so one user can never read another's missions.
"""

from datetime import datetime

from sqlalchemy import Select, func, select

from modules.backend.core.exceptions import NotFoundError
from modules.backend.models.mission import Mission, MissionStatus
from modules.backend.repositories.base import BaseRepository


class MissionRepository(BaseRepository[Mission]):
    """
    Repository for Mission model.

    Inherits standard CRUD operations from BaseRepository
    and adds per-user and lifecycle queries.
    """

    model = Mission

    def _user_query(
        self,
        user_id: str,
        status: str | None = None,
        mission_type: str | None = None,
    ) -> Select:
        query = select(Mission).where(Mission.user_id == user_id)
        if status:
            query = query.where(Mission.status == status)
        if mission_type:
            query = query.where(Mission.type == mission_type)
        return query

    async def get_for_user(self, mission_id: str, user_id: str) -> Mission:
        """
        Get a mission owned by the given user.

        Raises:
            NotFoundError: If the mission does not exist or belongs to someone else
        """
        result = await self.session.execute(
            select(Mission)
            .where(Mission.id == mission_id)
            .where(Mission.user_id == user_id)
        )
        mission = result.scalar_one_or_none()
        if mission is None:
            raise NotFoundError("Mission not found")
        return mission

    async def list_for_user(
        self,
        user_id: str,
        status: str | None = None,
        mission_type: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Mission]:
        """List a user's missions, newest first."""
        result = await self.session.execute(
            self._user_query(user_id, status, mission_type)
            .order_by(Mission.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_for_user(
        self,
        user_id: str,
        status: str | None = None,
        mission_type: str | None = None,
    ) -> int:
        subquery = self._user_query(user_id, status, mission_type).subquery()
        result = await self.session.execute(select(func.count()).select_from(subquery))
        return result.scalar_one()

    async def count_by_status_for_user(self, user_id: str) -> dict[str, int]:
        """Mission counts keyed by status, with zero for statuses the user has none in."""
        result = await self.session.execute(
            select(Mission.status, func.count())
            .where(Mission.user_id == user_id)
            .group_by(Mission.status)
        )
        counts = {status.value: 0 for status in MissionStatus}
        counts.update({status: count for status, count in result.all()})
        return counts

    async def get_latest_for_user(self, user_id: str) -> Mission | None:
        result = await self.session.execute(
            select(Mission)
            .where(Mission.user_id == user_id)
            .order_by(Mission.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_external_transaction_id(self, external_id: str) -> Mission | None:
        """Match a webhook payload back to its mission."""
        result = await self.session.execute(
            select(Mission).where(
                (Mission.external_transaction_id == external_id)
                | (Mission.external_api_id == external_id)
            )
        )
        return result.scalars().first()

    async def get_overdue_in_progress(self, now: datetime, limit: int = 100) -> list[Mission]:
        result = await self.session.execute(
            select(Mission)
            .where(Mission.status == MissionStatus.IN_PROGRESS.value)
            .where(Mission.deadline.is_not(None))
            .where(Mission.deadline < now)
            .limit(limit)
        )
        return list(result.scalars().all())
