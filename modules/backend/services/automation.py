"""
Mission Automation.

MissionRunner executes an in-progress mission against its third-party
API: it records the money movement, issues the receipt, then completes
the mission through MissionService. AutomationService is the
user-facing side: dispatching runs and reporting status.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import (
    ApplicationError,
    ExternalServiceError,
    InvalidStateTransitionError,
)
from modules.backend.events.publishers import MissionEventPublisher
from modules.backend.integrations.carbon_offset import CarbonOffsetClient, get_carbon_offset_client
from modules.backend.integrations.donation import DonationClient, get_donation_client
from modules.backend.integrations.petition import PetitionClient, get_petition_client
from modules.backend.models.mission import LogStatus, Mission, MissionType
from modules.backend.models.transaction import Transaction
from modules.backend.models.user import User
from modules.backend.repositories.mission import MissionRepository
from modules.backend.repositories.transaction import TransactionRepository
from modules.backend.repositories.user import UserRepository
from modules.backend.services.base import BaseService
from modules.backend.services.mission import MissionService
from modules.backend.services.queue import get_queue_service
from modules.backend.services.receipt import ReceiptService

DEFAULT_PETITION_ID = "petition_001"


@dataclass
class ExecutionOutcome:
    """What a third-party call produced."""

    external_id: str
    receipt_url: str | None = None
    details: dict[str, Any] | None = None


class MissionRunner(BaseService):
    """Runs one mission end to end."""

    def __init__(
        self,
        session: AsyncSession,
        carbon: CarbonOffsetClient | None = None,
        donation: DonationClient | None = None,
        petition: PetitionClient | None = None,
        publisher: MissionEventPublisher | None = None,
    ) -> None:
        super().__init__(session)
        self.missions = MissionRepository(session)
        self.users = UserRepository(session)
        self.transactions = TransactionRepository(session)
        self.carbon = carbon or get_carbon_offset_client()
        self.donation = donation or get_donation_client()
        self.petition = petition or get_petition_client()
        self.publisher = publisher or MissionEventPublisher(source="mission-runner")

    async def run(self, mission_id: str, correlation_id: str = "") -> dict[str, Any]:
        """
        Execute an in-progress mission.

        Failures from the third-party call fail the mission and its
        transaction instead of propagating.

        Returns:
            {mission_id, status, transaction_id, receipt_id, badge_id, error}
        """
        mission = await self.missions.get_by_id(mission_id)
        result: dict[str, Any] = {"mission_id": mission.id, "status": mission.status}

        if not mission.is_in_progress:
            self._logger.warning(
                "Mission not runnable",
                extra={"mission_id": mission.id, "status": mission.status},
            )
            result["error"] = "Mission is not in progress"
            return result

        user = await self.users.get_by_id(mission.user_id)
        mission.update_progress(10, "Executing mission")

        transaction = await self._execute_db_operation(
            "create_transaction",
            self.transactions.create(
                user_id=user.id,
                mission_id=mission.id,
                type=mission.type,
                amount=Decimal(mission.cost or 0),
                currency=mission.currency,
                tax_deductible=mission.type == MissionType.DONATION.value,
            ),
        )
        result["transaction_id"] = transaction.id

        try:
            if mission.type == MissionType.DONATION.value:
                transaction.validate_amount()
            transaction.mark_processing()

            outcome = await self._execute(mission, user)

            mission.set_external_ids(api_id=outcome.external_id)
            mission.update_progress(60, "External action confirmed")
            transaction.external_tx_id = outcome.external_id
            transaction.mark_completed()

            if mission.type in (MissionType.DONATION.value, MissionType.CARBON_OFFSET.value):
                receipt = await ReceiptService(self.session).issue_for_transaction(
                    mission,
                    transaction,
                    pdf_url=outcome.receipt_url,
                    metadata={"external_id": outcome.external_id, **(outcome.details or {})},
                )
                result["receipt_id"] = receipt.id
        except (ApplicationError, httpx.HTTPError) as e:
            reason = e.message if isinstance(e, ApplicationError) else str(e)
            await self._fail(mission, user, transaction, reason, correlation_id)
            result.update(status=mission.status, error=reason)
            return result

        badge = await MissionService(self.session, publisher=self.publisher).complete_mission(
            mission, user, outcome.external_id, correlation_id=correlation_id,
        )
        result.update(status=mission.status, badge_id=badge.id)
        return result

    async def _execute(self, mission: Mission, user: User) -> ExecutionOutcome:
        if mission.type == MissionType.CARBON_OFFSET.value:
            return await self._purchase_offset(mission)
        if mission.type == MissionType.DONATION.value:
            return await self._donate(mission, user)
        return await self._sign_petition(mission, user)

    async def _purchase_offset(self, mission: Mission) -> ExecutionOutcome:
        metadata = mission.mission_metadata or {}
        defaults = get_app_config().missions.automation
        data = await self.carbon.purchase_offset({
            "weight": metadata.get("weight", defaults.default_offset_weight_kg),
            "weight_unit": metadata.get("weight_unit", "kg"),
            "currency": mission.currency,
        })
        offset = data.get("offset") or {}
        offset_id = offset.get("id") or data.get("slug")
        if not offset_id:
            raise ExternalServiceError("Carbon offset returned no id", service="cloverly")
        return ExecutionOutcome(
            external_id=str(offset_id),
            receipt_url=offset.get("receipt_url"),
            details={"weight": metadata.get("weight", defaults.default_offset_weight_kg)},
        )

    async def _donate(self, mission: Mission, user: User) -> ExecutionOutcome:
        metadata = mission.mission_metadata or {}
        defaults = get_app_config().missions.automation
        created = await self.donation.create_donation({
            "amount": float(mission.cost),
            "currency": mission.currency,
            "recipient_id": metadata.get("recipient_id", defaults.default_donation_recipient),
            "anonymous": bool(metadata.get("anonymous", False)),
            "metadata": {"mission_id": mission.id, "telegram_id": user.telegram_id},
        })
        donation_id = (created.get("donation") or {}).get("id")
        if not donation_id:
            raise ExternalServiceError("Donation returned no id", service="one_click_impact")

        payment_method = {"type": metadata.get("payment_method", defaults.default_payment_method)}
        processed = await self.donation.process_donation(donation_id, payment_method)

        receipt_url = processed.get("receipt_url")
        if receipt_url is None:
            try:
                receipt_url = (await self.donation.generate_receipt(donation_id)).get("receipt_url")
            except ExternalServiceError as e:
                self._logger.warning(
                    "Donation receipt unavailable",
                    extra={"donation_id": donation_id, "error": e.message},
                )

        return ExecutionOutcome(
            external_id=str(processed.get("transaction_id") or donation_id),
            receipt_url=receipt_url,
            details={"donation_id": donation_id},
        )

    async def _sign_petition(self, mission: Mission, user: User) -> ExecutionOutcome:
        metadata = mission.mission_metadata or {}
        petition_id = metadata.get("petition_id", DEFAULT_PETITION_ID)
        signed = await self.petition.sign_petition(petition_id, {
            "user_name": user.display_name,
            "anonymous": bool(metadata.get("anonymous", False)),
            "comment": metadata.get("comment"),
        })
        if not signed["signature_id"]:
            raise ExternalServiceError("Petition returned no signature id", service="nation_builder")
        return ExecutionOutcome(
            external_id=signed["signature_id"],
            details={"petition_id": petition_id},
        )

    async def _fail(
        self,
        mission: Mission,
        user: User,
        transaction: Transaction,
        reason: str,
        correlation_id: str,
    ) -> None:
        mission.fail(reason)
        transaction.mark_failed(reason)
        await self.session.flush()

        self._logger.warning(
            "Mission run failed",
            extra={"mission_id": mission.id, "reason": reason},
        )
        await self.publisher.mission_failed(mission, user, reason, correlation_id=correlation_id)


async def dispatch_mission_run(
    session: AsyncSession,
    mission_id: str,
    correlation_id: str,
    run_inline: bool = False,
) -> dict[str, Any]:
    """
    Queue run_mission, or run it in this session when no worker is available.

    The session is committed before queueing so the worker sees the
    in-progress mission.
    """
    queue = get_queue_service()
    if not run_inline and queue.is_available():
        await session.commit()
        job = await queue.add_job(
            "run_mission", {"mission_id": mission_id, "correlation_id": correlation_id},
        )
        return {"queued": True, "task_id": job["task_id"]}

    result = await MissionRunner(session).run(mission_id, correlation_id=correlation_id)
    return {"queued": False, "result": result}


class AutomationService(BaseService):
    """User-facing mission automation."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.missions = MissionRepository(session)

    async def execute(
        self,
        user: User,
        mission_id: str,
        correlation_id: str,
        run_inline: bool = False,
    ) -> dict[str, Any]:
        """
        Start the mission if still pending, then run or queue it.

        Raises:
            NotFoundError: Not the caller's mission
            InvalidStateTransitionError: The mission already finished
        """
        mission = await self.missions.get_for_user(mission_id, user.id)

        if mission.is_pending:
            mission.start()
            await self.session.flush()
            await MissionEventPublisher(source="automation").mission_started(
                mission, user, correlation_id=correlation_id,
            )
        elif not mission.is_in_progress:
            raise InvalidStateTransitionError("Mission is not in progress")

        mission.add_log("automation", LogStatus.INFO, "Automated execution requested")
        self._log_operation("Executing mission", mission_id=mission.id, run_inline=run_inline)

        dispatched = await dispatch_mission_run(
            self.session, mission.id, correlation_id, run_inline=run_inline,
        )
        return {"mission_id": mission.id, **dispatched}

    async def status(self, user: User) -> dict[str, Any]:
        return {
            "missions_by_status": await self.missions.count_by_status_for_user(user.id),
            "latest_mission": await self.missions.get_latest_for_user(user.id),
            "worker_available": get_queue_service().is_available(),
        }
