"""
Gas Sponsorship Model.

One row per sponsored user operation. Eligibility limits are counted
from these rows.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.models.base import Base, TimestampMixin, UUIDMixin


class GasSponsorship(UUIDMixin, TimestampMixin, Base):
    """Gas sponsorship record."""

    __tablename__ = "gas_sponsorships"

    address: Mapped[str] = mapped_column(String(42), index=True, nullable=False)
    user_op_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    service: Mapped[str] = mapped_column(String(32), nullable=False)
    chain_id: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<GasSponsorship(address={self.address}, service={self.service})>"
