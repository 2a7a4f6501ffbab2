"""
Receipt Repository.

Data access for tax receipts, scoped to the owning user.
"""

from sqlalchemy import func, select

from modules.backend.core.exceptions import NotFoundError
from modules.backend.models.receipt import Receipt
from modules.backend.repositories.base import BaseRepository


class ReceiptRepository(BaseRepository[Receipt]):
    """Repository for Receipt model."""

    model = Receipt

    async def get_for_user(self, receipt_id: str, user_id: str) -> Receipt:
        """
        Raises:
            NotFoundError: If the receipt does not exist or belongs to someone else
        """
        result = await self.session.execute(
            select(Receipt)
            .where(Receipt.id == receipt_id)
            .where(Receipt.user_id == user_id)
        )
        receipt = result.scalar_one_or_none()
        if receipt is None:
            raise NotFoundError("Receipt not found")
        return receipt

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[Receipt]:
        result = await self.session.execute(
            select(Receipt)
            .where(Receipt.user_id == user_id)
            .order_by(Receipt.issued_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Receipt).where(Receipt.user_id == user_id)
        )
        return result.scalar_one()

    async def receipt_number_exists(self, receipt_number: str) -> bool:
        result = await self.session.execute(
            select(Receipt.id).where(Receipt.receipt_number == receipt_number)
        )
        return result.scalar_one_or_none() is not None
