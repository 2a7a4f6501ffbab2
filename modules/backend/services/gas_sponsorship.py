"""
Gas Sponsorship Service.

Daily sponsorship allowance per address, backed by persisted
GasSponsorship records. Days roll over at 00:00 UTC.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import ValidationError
from modules.backend.core.utils import utc_now
from modules.backend.integrations.gas_sponsorship import PaymasterClient, get_paymaster_client
from modules.backend.models.gas_sponsorship import GasSponsorship
from modules.backend.repositories.gas_sponsorship import GasSponsorshipRepository
from modules.backend.services.base import BaseService

DAILY_LIMIT_EXCEEDED = "Daily sponsorship limit exceeded"


def start_of_day(now: datetime | None = None) -> datetime:
    now = now or utc_now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class GasSponsorshipService(BaseService):
    """Eligibility, sponsorship and bookkeeping for paymaster-sponsored operations."""

    def __init__(
        self,
        session: AsyncSession,
        paymaster: PaymasterClient | None = None,
    ) -> None:
        super().__init__(session)
        self.repo = GasSponsorshipRepository(session)
        self._paymaster = paymaster

    @property
    def paymaster(self) -> PaymasterClient:
        if self._paymaster is None:
            self._paymaster = get_paymaster_client()
        return self._paymaster

    async def check_eligibility(self, address: str) -> dict[str, Any]:
        daily_limit = get_app_config().integrations.gas_sponsorship.daily_limit
        used = await self.repo.count_for_address_since(address, start_of_day())
        remaining = max(0, daily_limit - used)

        if remaining == 0:
            return {
                "eligible": False,
                "remaining_sponsorships": 0,
                "reason": DAILY_LIMIT_EXCEEDED,
            }
        return {"eligible": True, "remaining_sponsorships": remaining, "reason": None}

    async def record_sponsorship(
        self,
        address: str,
        service: str,
        chain_id: int,
        user_op_hash: str | None = None,
    ) -> GasSponsorship:
        record = await self._execute_db_operation(
            "record_sponsorship",
            self.repo.create(
                address=address,
                user_op_hash=user_op_hash,
                service=service,
                chain_id=chain_id,
            ),
        )
        self._log_operation(
            "Gas sponsorship recorded",
            address=address,
            service=service,
            chain_id=chain_id,
        )
        return record

    async def sponsor(self, user_op: dict[str, Any], chain_id: int | None = None) -> dict[str, Any]:
        """
        Sponsor a user operation if its sender still has allowance today.

        The sender's advisory lock is held from the eligibility check until
        the request transaction commits the new record.

        Raises:
            ValidationError: Sender is over the daily limit
            ExternalServiceError: The paymaster refused or is not configured
        """
        self._validate_required(user_op, ["sender"])
        sender = user_op["sender"]
        await self.repo.lock_address(sender)
        eligibility = await self.check_eligibility(sender)
        if not eligibility["eligible"]:
            raise ValidationError(
                eligibility["reason"],
                details={"address": sender, "remaining_sponsorships": 0},
            )

        blockchain = get_app_config().blockchain
        chain_id = chain_id or blockchain.chain_id
        sponsorship = await self.paymaster.sponsor_gas(
            user_op, blockchain.account_abstraction.entry_point_address, chain_id,
        )
        await self.record_sponsorship(sender, self.paymaster.service, chain_id)
        return sponsorship

    async def get_sponsorship_stats(self) -> dict[str, int]:
        return {
            "total_sponsored": await self.repo.count(),
            "active_users": await self.repo.count_distinct_addresses(),
            "sponsored_today": await self.repo.count_since(start_of_day()),
        }
