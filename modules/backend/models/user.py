"""
User Model.

A Telegram user of the Mini App, created on first authenticated request.
"""

from datetime import datetime, timedelta

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.core.utils import utc_now
from modules.backend.models.base import Base, TimestampMixin, UUIDMixin

RECENT_ACTIVITY_WINDOW = timedelta(days=7)


class User(UUIDMixin, TimestampMixin, Base):
    """
    User database model.

    Identity comes from Telegram (telegram_id is the natural key).
    Impact counters are denormalised so the profile screen needs no
    aggregate queries.
    """

    __tablename__ = "users"

    telegram_id: Mapped[int] = mapped_column(
        BigInteger,
        unique=True,
        index=True,
        nullable=False,
    )
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    language_code: Mapped[str] = mapped_column(String(10), default="en", nullable=False)
    is_premium: Mapped[bool] = mapped_column(default=False, nullable=False)

    wallet_address: Mapped[str | None] = mapped_column(String(42), nullable=True)

    total_impact: Mapped[int] = mapped_column(default=0, nullable=False)
    missions_completed: Mapped[int] = mapped_column(default=0, nullable=False)
    badges_earned: Mapped[int] = mapped_column(default=0, nullable=False)

    last_active_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def full_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.username or f"User {self.telegram_id}"

    @property
    def display_name(self) -> str:
        return self.username or self.first_name or f"User {self.telegram_id}"

    @property
    def has_wallet(self) -> bool:
        return bool(self.wallet_address)

    @property
    def is_active_recently(self) -> bool:
        if self.last_active_at is None:
            return False
        return utc_now() - self.last_active_at <= RECENT_ACTIVITY_WINDOW

    def touch(self) -> None:
        """Record activity now."""
        self.last_active_at = utc_now()

    def record_mission_completion(self, impact: int) -> None:
        self.missions_completed = (self.missions_completed or 0) + 1
        self.total_impact = (self.total_impact or 0) + impact

    def record_badge(self) -> None:
        self.badges_earned = (self.badges_earned or 0) + 1

    def __repr__(self) -> str:
        return f"<User(id={self.id}, telegram_id={self.telegram_id})>"
