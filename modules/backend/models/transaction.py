"""
Transaction Model.

Money movement behind a mission: an offset purchase, a donation, or a
zero-amount petition signature.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.core.exceptions import InvalidStateTransitionError, ValidationError
from modules.backend.core.utils import utc_now
from modules.backend.models.base import Base, TimestampMixin, UUIDMixin

MAX_TRANSACTION_AMOUNT = Decimal("1000000")


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Transaction(UUIDMixin, TimestampMixin, Base):
    """Transaction database model."""

    __tablename__ = "transactions"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    mission_id: Mapped[str | None] = mapped_column(
        ForeignKey("missions.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        default=TransactionStatus.PENDING.value,
        index=True,
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="KRW", nullable=False)

    external_tx_id: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    gas_used: Mapped[int | None] = mapped_column(nullable=True)
    gas_price: Mapped[str | None] = mapped_column(String(80), nullable=True)

    tax_deductible: Mapped[bool] = mapped_column(default=False, nullable=False)
    receipt_issued: Mapped[bool] = mapped_column(default=False, nullable=False)
    receipt_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def total_amount(self) -> Decimal:
        return Decimal(self.amount or 0) + Decimal(self.fee_amount or 0)

    @property
    def can_refund(self) -> bool:
        return self.status in (
            TransactionStatus.PENDING.value,
            TransactionStatus.PROCESSING.value,
        )

    def add_note(self, note: str) -> None:
        if self.notes:
            self.notes = f"{self.notes}\n[{utc_now().isoformat()}] {note}"
        else:
            self.notes = note

    def validate_amount(self) -> None:
        amount = Decimal(self.amount or 0)
        if amount <= 0:
            raise ValidationError(
                "Transaction amount must be positive",
                details={"amount": str(amount)},
            )
        if amount > MAX_TRANSACTION_AMOUNT:
            raise ValidationError(
                "Transaction amount exceeds the maximum allowed",
                details={"amount": str(amount), "max": str(MAX_TRANSACTION_AMOUNT)},
            )

    def mark_processing(self) -> None:
        if self.status != TransactionStatus.PENDING.value:
            raise InvalidStateTransitionError("Transaction is not pending")
        self.status = TransactionStatus.PROCESSING.value

    def mark_completed(self, tx_hash: str | None = None) -> None:
        if self.status not in (
            TransactionStatus.PENDING.value,
            TransactionStatus.PROCESSING.value,
        ):
            raise InvalidStateTransitionError(f"Transaction is already {self.status}")
        self.status = TransactionStatus.COMPLETED.value
        self.processed_at = utc_now()
        if tx_hash:
            self.blockchain_tx_hash = tx_hash

    def mark_failed(self, reason: str) -> None:
        self.status = TransactionStatus.FAILED.value
        self.failed_at = utc_now()
        self.add_note(f"Failed: {reason}")

    def mark_refunded(self) -> None:
        if self.status != TransactionStatus.COMPLETED.value:
            raise InvalidStateTransitionError("Only completed transactions can be refunded")
        self.status = TransactionStatus.REFUNDED.value
        self.add_note("Refunded")

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.type}, status={self.status})>"
