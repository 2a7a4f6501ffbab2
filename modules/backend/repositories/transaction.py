"""
Transaction Repository.
"""

from sqlalchemy import select

from modules.backend.models.transaction import Transaction
from modules.backend.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model."""

    model = Transaction

    async def list_for_mission(self, mission_id: str) -> list[Transaction]:
        result = await self.session.execute(
            select(Transaction)
            .where(Transaction.mission_id == mission_id)
            .order_by(Transaction.created_at.desc())
        )
        return list(result.scalars().all())
