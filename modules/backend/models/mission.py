"""
Mission Model.

An impact mission owned by a user, with a linear lifecycle:

    pending → in_progress → completed
        │           │
        └───────────┴────→ failed

Every transition appends an entry to the mission's work log.
"""

import enum
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from modules.backend.core.exceptions import InvalidStateTransitionError, ValidationError
from modules.backend.core.utils import utc_now
from modules.backend.models.base import Base, TimestampMixin, UUIDMixin


class MissionType(str, enum.Enum):
    CARBON_OFFSET = "carbon_offset"
    DONATION = "donation"
    PETITION = "petition"


class MissionStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class LogStatus(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Mission(UUIDMixin, TimestampMixin, Base):
    """
    Mission database model.

    State-changing methods enforce the lifecycle and raise
    InvalidStateTransitionError on a disallowed transition. They never
    commit; the caller's session does.
    """

    __tablename__ = "missions"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    impact: Mapped[int] = mapped_column(default=0, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="KRW", nullable=False)

    status: Mapped[str] = mapped_column(
        String(32),
        default=MissionStatus.PENDING.value,
        index=True,
        nullable=False,
    )
    progress: Mapped[int] = mapped_column(default=0, nullable=False)
    logs: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    external_api_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_transaction_id: Mapped[str | None] = mapped_column(
        String(255), index=True, nullable=True,
    )
    blockchain_tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    sbt_token_id: Mapped[str | None] = mapped_column(String(80), nullable=True)
    receipt_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    mission_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    @property
    def is_completed(self) -> bool:
        return self.status == MissionStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        return self.status == MissionStatus.FAILED.value

    @property
    def is_in_progress(self) -> bool:
        return self.status == MissionStatus.IN_PROGRESS.value

    @property
    def is_pending(self) -> bool:
        return self.status == MissionStatus.PENDING.value

    @property
    def is_overdue(self) -> bool:
        return self.deadline is not None and utc_now() > self.deadline

    @property
    def duration(self) -> timedelta | None:
        """Time from start to completion, failure, or now if still running."""
        if self.started_at is None:
            return None
        end = self.completed_at or self.failed_at or utc_now()
        return end - self.started_at

    # -------------------------------------------------------------------------
    # Work log
    # -------------------------------------------------------------------------

    def add_log(
        self,
        action: str,
        status: LogStatus | str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Append a work-log entry. The list is reassigned so the JSON column is flushed."""
        status_value = LogStatus(status).value
        entry = {
            "timestamp": utc_now().isoformat(),
            "action": action,
            "status": status_value,
            "message": message,
            "metadata": metadata or {},
        }
        self.logs = [*(self.logs or []), entry]
        return entry

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        if not self.is_pending:
            raise InvalidStateTransitionError("Mission is not in pending status")
        self.status = MissionStatus.IN_PROGRESS.value
        self.started_at = utc_now()
        self.add_log("start", LogStatus.INFO, "Mission started")

    def complete(self, external_transaction_id: str) -> None:
        if not self.is_in_progress:
            raise InvalidStateTransitionError("Mission is not in progress")
        if not external_transaction_id:
            raise ValidationError("External transaction ID is required")
        self.status = MissionStatus.COMPLETED.value
        self.completed_at = utc_now()
        self.progress = 100
        self.external_transaction_id = external_transaction_id
        self.add_log(
            "complete",
            LogStatus.SUCCESS,
            "Mission completed successfully",
            {"external_transaction_id": external_transaction_id},
        )

    def fail(self, reason: str | None = None) -> None:
        if self.is_completed or self.is_failed:
            raise InvalidStateTransitionError(f"Mission is already {self.status}")
        self.status = MissionStatus.FAILED.value
        self.failed_at = utc_now()
        self.add_log(
            "fail",
            LogStatus.ERROR,
            f"Mission failed: {reason or 'Unknown error'}",
            {"reason": reason},
        )

    def update_progress(self, progress: int, message: str | None = None) -> None:
        self.progress = max(0, min(100, progress))
        self.add_log(
            "progress_update",
            LogStatus.INFO,
            message or f"Progress updated to {self.progress}%",
            {"progress": self.progress},
        )

    def set_external_ids(
        self,
        api_id: str | None = None,
        transaction_id: str | None = None,
    ) -> None:
        if api_id:
            self.external_api_id = api_id
        if transaction_id:
            self.external_transaction_id = transaction_id
        self.add_log(
            "external_ids_set",
            LogStatus.INFO,
            "External IDs recorded",
            {"external_api_id": api_id, "external_transaction_id": transaction_id},
        )

    def set_blockchain_data(self, tx_hash: str, sbt_token_id: str | None = None) -> None:
        self.blockchain_tx_hash = tx_hash
        if sbt_token_id is not None:
            self.sbt_token_id = sbt_token_id
        self.add_log(
            "blockchain_data_set",
            LogStatus.SUCCESS,
            "Blockchain data recorded",
            {"tx_hash": tx_hash, "sbt_token_id": sbt_token_id},
        )

    def __repr__(self) -> str:
        return f"<Mission(id={self.id}, type={self.type}, status={self.status})>"
