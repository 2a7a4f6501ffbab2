"""
Badge Model.

Badge earned by completing a mission. Optionally minted on-chain as a
soulbound token, after which token_id and transaction_hash are set.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.core.utils import utc_now
from modules.backend.models.base import Base, TimestampMixin, UUIDMixin


class Badge(UUIDMixin, TimestampMixin, Base):
    """Badge database model. One badge per mission."""

    __tablename__ = "badges"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    mission_id: Mapped[str] = mapped_column(
        ForeignKey("missions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    mission_type: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    impact: Mapped[int] = mapped_column(default=0, nullable=False)

    token_id: Mapped[str | None] = mapped_column(String(80), nullable=True)
    transaction_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    token_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    minted: Mapped[bool] = mapped_column(default=False, nullable=False)
    minted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    badge_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    def mark_minted(self, token_id: str, transaction_hash: str, token_uri: str | None = None) -> None:
        self.token_id = token_id
        self.transaction_hash = transaction_hash
        self.token_uri = token_uri
        self.minted = True
        self.minted_at = utc_now()

    def __repr__(self) -> str:
        return f"<Badge(id={self.id}, mission_id={self.mission_id}, minted={self.minted})>"
