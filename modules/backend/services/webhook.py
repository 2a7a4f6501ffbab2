"""
Webhook Service.

Applies inbound third-party notifications to the mission they concern.
"""

from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.events.publishers import MissionEventPublisher
from modules.backend.models.mission import LogStatus, Mission
from modules.backend.repositories.mission import MissionRepository
from modules.backend.repositories.user import UserRepository
from modules.backend.services.base import BaseService
from modules.backend.services.mission import MissionService

WEBHOOK_SERVICES = frozenset({"cloverly", "one_click_impact", "nation_builder", "bundler"})


class WebhookService(BaseService):
    """Matches webhooks to missions by external transaction id."""

    def __init__(
        self,
        session: AsyncSession,
        publisher: MissionEventPublisher | None = None,
    ) -> None:
        super().__init__(session)
        self.missions = MissionRepository(session)
        self.users = UserRepository(session)
        self.publisher = publisher or MissionEventPublisher(source="webhooks")

    async def process(self, service: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Apply a webhook payload.

        A "completed" status completes an in-progress mission, "failed"
        fails an unfinished one. Anything else, or a status that no longer
        applies, is recorded in the work log.
        """
        external_id = payload.get("external_transaction_id")
        if not external_id:
            self._logger.warning("Webhook without external_transaction_id", extra={"service": service})
            return {"matched": False, "reason": "external_transaction_id missing"}

        mission = await self.missions.get_by_external_transaction_id(str(external_id))
        if mission is None:
            self._logger.warning(
                "Webhook for unknown transaction",
                extra={"service": service, "external_transaction_id": external_id},
            )
            return {"matched": False, "reason": "no matching mission"}

        status = str(payload.get("status") or "").lower()
        correlation_id = str(payload.get("correlation_id") or uuid4())
        context = {"service": service, "status": status or None}

        if status == "completed" and mission.is_in_progress:
            user = await self.users.get_by_id(mission.user_id)
            await MissionService(self.session, publisher=self.publisher).complete_mission(
                mission, user, str(external_id), correlation_id=correlation_id,
            )
        elif status == "failed" and not self._is_terminal(mission):
            reason = payload.get("reason") or f"{service} reported failure"
            mission.fail(reason)
            user = await self.users.get_by_id(mission.user_id)
            await self.publisher.mission_failed(mission, user, reason, correlation_id=correlation_id)
        else:
            mission.add_log(
                "webhook",
                LogStatus.INFO,
                f"{service} webhook received: {status or 'update'}",
                context,
            )

        await self.session.flush()
        self._log_operation(
            "Webhook applied",
            mission_id=mission.id,
            mission_status=mission.status,
            **context,
        )
        return {"matched": True, "mission_id": mission.id, "status": mission.status}

    @staticmethod
    def _is_terminal(mission: Mission) -> bool:
        return mission.is_completed or mission.is_failed
