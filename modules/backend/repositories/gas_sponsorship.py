"""
Gas Sponsorship Repository.

Counting queries that back eligibility checks and sponsorship stats,
plus the per-address lock that serializes check-then-record.
"""

from datetime import datetime

from sqlalchemy import func, select

from modules.backend.models.gas_sponsorship import GasSponsorship
from modules.backend.repositories.base import BaseRepository


class GasSponsorshipRepository(BaseRepository[GasSponsorship]):
    """Repository for GasSponsorship model."""

    model = GasSponsorship

    async def lock_address(self, address: str) -> None:
        """
        Hold a transaction-scoped advisory lock on this address.

        Concurrent sponsor calls for one sender queue behind each other
        until the holder commits. No-op on databases without advisory locks.
        """
        if self.session.get_bind().dialect.name != "postgresql":
            return
        await self.session.execute(
            select(func.pg_advisory_xact_lock(func.hashtext(address.lower())))
        )

    async def count_for_address_since(self, address: str, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(GasSponsorship)
            .where(func.lower(GasSponsorship.address) == address.lower())
            .where(GasSponsorship.created_at >= since)
        )
        return result.scalar_one()

    async def count_since(self, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(GasSponsorship)
            .where(GasSponsorship.created_at >= since)
        )
        return result.scalar_one()

    async def count_distinct_addresses(self) -> int:
        result = await self.session.execute(
            select(func.count(func.distinct(func.lower(GasSponsorship.address))))
        )
        return result.scalar_one()
