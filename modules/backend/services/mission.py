"""
Mission Service.

Business logic for impact missions: creation from the catalog or from
explicit fields, the user-driven lifecycle, and the completion steps
shared by the runner and inbound webhooks.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config
from modules.backend.core.config_schema import MissionTemplateSchema
from modules.backend.core.exceptions import ApplicationError, NotFoundError
from modules.backend.core.utils import utc_now
from modules.backend.events.publishers import MissionEventPublisher
from modules.backend.models.badge import Badge
from modules.backend.models.mission import LogStatus, Mission
from modules.backend.models.user import User
from modules.backend.repositories.mission import MissionRepository
from modules.backend.repositories.user import UserRepository
from modules.backend.schemas.mission import MissionCreate
from modules.backend.services.base import BaseService
from modules.backend.services.user import UserService

DEADLINE_EXCEEDED = "Mission deadline exceeded"


def get_catalog() -> list[MissionTemplateSchema]:
    return list(get_app_config().missions.catalog)


def get_template(template_id: str) -> MissionTemplateSchema:
    """
    Raises:
        NotFoundError: If no catalog entry has this id
    """
    for template in get_catalog():
        if template.id == template_id:
            return template
    raise NotFoundError("Mission template not found")


class MissionService(BaseService):
    """
    Service for mission business logic.

    State transitions are enforced by the Mission model; this layer
    scopes every lookup to the caller and publishes lifecycle events.
    """

    def __init__(
        self,
        session: AsyncSession,
        publisher: MissionEventPublisher | None = None,
    ) -> None:
        super().__init__(session)
        self.repo = MissionRepository(session)
        self.users = UserRepository(session)
        self.publisher = publisher or MissionEventPublisher()

    async def create_mission(self, user: User, data: MissionCreate) -> Mission:
        """
        Create a pending mission from a catalog template or explicit fields.

        Explicit fields override the template's values.

        Raises:
            NotFoundError: Unknown template_id
        """
        fields: dict[str, Any] = {}
        metadata = dict(data.metadata)
        deadline = data.deadline

        if data.template_id is not None:
            template = get_template(data.template_id)
            fields = {
                "type": template.type,
                "title": template.title,
                "description": template.description,
                "impact": template.impact,
                "cost": Decimal(str(template.cost)),
                "currency": template.currency,
            }
            metadata = {
                "template_id": template.id,
                "requirements": template.requirements,
                **metadata,
            }
            if deadline is None:
                deadline = utc_now() + timedelta(days=template.duration_days)

        overrides = data.model_dump(
            exclude_unset=True,
            exclude={"template_id", "metadata", "deadline"},
        )
        fields.update({key: value for key, value in overrides.items() if value is not None})

        self._log_operation(
            "Creating mission",
            user_id=user.id,
            mission_type=fields["type"],
            template_id=data.template_id,
        )

        mission = await self._execute_db_operation(
            "create_mission",
            self.repo.create(
                user_id=user.id,
                deadline=deadline,
                mission_metadata=metadata,
                **fields,
            ),
        )
        mission.add_log("create", LogStatus.INFO, "Mission created")
        await self.session.flush()

        self._log_debug("Mission created", mission_id=mission.id)
        return mission

    async def get_mission(self, user: User, mission_id: str) -> Mission:
        return await self.repo.get_for_user(mission_id, user.id)

    async def list_missions(
        self,
        user: User,
        status: str | None = None,
        mission_type: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Mission], int]:
        """
        List the user's missions with total count for pagination.

        Returns:
            Tuple of (missions list, total count)
        """
        missions = await self.repo.list_for_user(
            user.id, status=status, mission_type=mission_type, limit=limit, offset=offset,
        )
        total = await self.repo.count_for_user(user.id, status=status, mission_type=mission_type)
        return missions, total

    async def get_logs(self, user: User, mission_id: str) -> list[dict[str, Any]]:
        mission = await self.repo.get_for_user(mission_id, user.id)
        return list(mission.logs or [])

    async def start_mission(
        self,
        user: User,
        mission_id: str,
        correlation_id: str,
    ) -> Mission:
        """
        Move a pending mission to in_progress.

        When missions_auto_run_enabled is on, the run is dispatched right away.

        Raises:
            NotFoundError: Not the caller's mission
            InvalidStateTransitionError: The mission is not pending
        """
        mission = await self.repo.get_for_user(mission_id, user.id)
        mission.start()
        await self.session.flush()

        self._log_operation("Mission started", mission_id=mission.id, user_id=user.id)
        await self.publisher.mission_started(mission, user, correlation_id=correlation_id)

        if get_app_config().features.missions_auto_run_enabled:
            from modules.backend.services.automation import dispatch_mission_run

            await dispatch_mission_run(self.session, mission.id, correlation_id)
            await self.session.refresh(mission)

        return mission

    async def fail_mission(
        self,
        user: User,
        mission_id: str,
        reason: str | None,
        correlation_id: str,
    ) -> Mission:
        """
        Fail (cancel) one of the user's missions.

        Raises:
            InvalidStateTransitionError: The mission already completed or failed
        """
        mission = await self.repo.get_for_user(mission_id, user.id)
        reason = reason or "Cancelled by user"
        mission.fail(reason)
        await self.session.flush()

        self._log_operation("Mission failed", mission_id=mission.id, reason=reason)
        await self.publisher.mission_failed(mission, user, reason, correlation_id=correlation_id)
        return mission

    async def complete_mission(
        self,
        mission: Mission,
        user: User,
        external_transaction_id: str,
        correlation_id: str,
    ) -> Badge:
        """
        Complete a mission and apply its rewards.

        Credits the user's impact, creates the badge and, when auto-mint is
        on and the user has a wallet, mints it. A failed mint is logged on
        the mission and leaves the badge unminted.

        Returns:
            The mission's badge
        """
        from modules.backend.services.badge import BadgeService

        mission.complete(external_transaction_id)
        await UserService(self.session).record_mission_completion(user, mission.impact)

        badges = BadgeService(self.session, publisher=self.publisher)
        badge = await badges.create_badge_for_mission(mission, user)

        if get_app_config().features.missions_auto_mint_enabled and user.has_wallet:
            try:
                badge = await badges.mint_badge(
                    user, mission_id=mission.id, correlation_id=correlation_id,
                )
            except ApplicationError as e:
                self._logger.warning(
                    "Badge auto-mint failed",
                    extra={"mission_id": mission.id, "error": e.message},
                )
                mission.add_log("mint", LogStatus.WARNING, f"Badge mint failed: {e.message}")

        await self.session.flush()
        self._log_operation(
            "Mission completed",
            mission_id=mission.id,
            impact=mission.impact,
            badge_id=badge.id,
        )
        await self.publisher.mission_completed(mission, user, correlation_id=correlation_id)
        return badge

    async def expire_stale_missions(self, limit: int = 100, correlation_id: str = "") -> int:
        """
        Fail in-progress missions past their deadline.

        Returns:
            Number of missions expired
        """
        missions = await self.repo.get_overdue_in_progress(utc_now(), limit=limit)
        for mission in missions:
            mission.fail(DEADLINE_EXCEEDED)
            user = await self.users.get_by_id(mission.user_id)
            await self.publisher.mission_failed(
                mission, user, DEADLINE_EXCEEDED, correlation_id=correlation_id,
            )
        await self.session.flush()

        if missions:
            self._log_operation("Expired stale missions", count=len(missions))
        return len(missions)
