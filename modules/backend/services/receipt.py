"""
Receipt Service.

Issues tax receipts for donations and carbon-offset purchases and serves
them back to their owner.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import ConflictError, NotFoundError, ValidationError
from modules.backend.core.utils import utc_now
from modules.backend.models.mission import Mission
from modules.backend.models.receipt import Receipt, ReceiptType, generate_receipt_number
from modules.backend.models.transaction import Transaction
from modules.backend.models.user import User
from modules.backend.repositories.receipt import ReceiptRepository
from modules.backend.services.base import BaseService

RECEIPT_NUMBER_ATTEMPTS = 5


class ReceiptService(BaseService):
    """Service for tax receipts."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ReceiptRepository(session)

    async def list_receipts(
        self,
        user: User,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Receipt], int]:
        receipts = await self.repo.list_for_user(user.id, limit=limit, offset=offset)
        total = await self.repo.count_for_user(user.id)
        return receipts, total

    async def get_receipt(self, user: User, receipt_id: str) -> Receipt:
        return await self.repo.get_for_user(receipt_id, user.id)

    async def get_download_url(self, user: User, receipt_id: str) -> str:
        """
        Raises:
            NotFoundError: Unknown receipt, or one without a PDF
        """
        receipt = await self.repo.get_for_user(receipt_id, user.id)
        if not receipt.can_be_downloaded:
            raise NotFoundError("Receipt PDF not available")
        return receipt.pdf_url

    async def issue_for_transaction(
        self,
        mission: Mission,
        transaction: Transaction,
        pdf_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Receipt:
        """
        Issue the receipt for a completed donation or offset transaction.

        Links the receipt back to the transaction and the mission.

        Raises:
            ValidationError: Mission type has no receipts
            ConflictError: No unique receipt number could be drawn
        """
        try:
            receipt_type = ReceiptType(mission.type)
        except ValueError:
            raise ValidationError(
                "Receipts are issued for donations and carbon offsets only",
                details={"mission_type": mission.type},
            )

        issued_at = utc_now()
        receipt_number = await self._unique_receipt_number(issued_at.year)
        receipt = await self._execute_db_operation(
            "issue_receipt",
            self.repo.create(
                user_id=mission.user_id,
                transaction_id=transaction.id,
                mission_id=mission.id,
                type=receipt_type.value,
                amount=Decimal(transaction.amount or 0),
                currency=transaction.currency,
                receipt_number=receipt_number,
                issued_at=issued_at,
                issued_by=get_app_config().missions.receipt_issuers.get(receipt_type.value),
                tax_deductible=receipt_type is ReceiptType.DONATION,
                tax_year=issued_at.year,
                pdf_url=pdf_url,
                receipt_metadata=metadata or {},
            ),
        )

        transaction.receipt_issued = True
        transaction.receipt_id = receipt.id
        mission.receipt_id = receipt.id
        await self.session.flush()

        self._log_operation(
            "Receipt issued",
            receipt_id=receipt.id,
            receipt_number=receipt.receipt_number,
            mission_id=mission.id,
        )
        return receipt

    async def _unique_receipt_number(self, year: int) -> str:
        for _ in range(RECEIPT_NUMBER_ATTEMPTS):
            candidate = generate_receipt_number(year)
            if not await self.repo.receipt_number_exists(candidate):
                return candidate
        raise ConflictError("Could not allocate a receipt number")
