"""
Receipt Model.

Tax receipt issued for a donation or a carbon-offset purchase.
"""

import enum
import secrets
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.core.utils import utc_now
from modules.backend.models.base import Base, TimestampMixin, UUIDMixin

TAX_VALIDITY_PERIOD = timedelta(days=5 * 365)
DEDUCTIBLE_INCOME_RATIO = Decimal("0.3")


class ReceiptType(str, enum.Enum):
    DONATION = "donation"
    CARBON_OFFSET = "carbon_offset"


def generate_receipt_number(year: int | None = None) -> str:
    """Receipt numbers look like IMP-2026-004217."""
    year = year or utc_now().year
    return f"IMP-{year}-{secrets.randbelow(1_000_000):06d}"


class Receipt(UUIDMixin, TimestampMixin, Base):
    """Receipt database model."""

    __tablename__ = "receipts"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    transaction_id: Mapped[str | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
    )
    mission_id: Mapped[str | None] = mapped_column(
        ForeignKey("missions.id", ondelete="SET NULL"),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="KRW", nullable=False)

    receipt_number: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        default=generate_receipt_number,
        nullable=False,
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    issued_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    tax_deductible: Mapped[bool] = mapped_column(default=False, nullable=False)
    tax_year: Mapped[int | None] = mapped_column(nullable=True)

    pdf_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    email_sent: Mapped[bool] = mapped_column(default=False, nullable=False)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    receipt_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_valid_for_tax_deduction(self) -> bool:
        if not self.tax_deductible or self.issued_at is None:
            return False
        return utc_now() - self.issued_at <= TAX_VALIDITY_PERIOD

    @property
    def can_be_downloaded(self) -> bool:
        return bool(self.pdf_url)

    def validate_for_tax_deduction(self) -> list[str]:
        """Return the reasons this receipt cannot be used for a tax claim."""
        errors: list[str] = []
        if not self.tax_deductible:
            errors.append("Receipt is not tax deductible")
        if not self.receipt_number:
            errors.append("Receipt number is missing")
        if not self.issued_by:
            errors.append("Issuer is missing")
        if self.amount is None or Decimal(self.amount) <= 0:
            errors.append("Amount must be greater than zero")
        return errors

    def get_deductible_amount(self, income: Decimal | float) -> Decimal:
        cap = Decimal(str(income)) * DEDUCTIBLE_INCOME_RATIO
        return min(Decimal(self.amount), cap)

    def mark_email_sent(self) -> None:
        self.email_sent = True
        self.email_sent_at = utc_now()

    def __repr__(self) -> str:
        return f"<Receipt(id={self.id}, number={self.receipt_number})>"
