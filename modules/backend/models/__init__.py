"""Database models. Importing this package registers every table on Base.metadata."""

from modules.backend.models.badge import Badge
from modules.backend.models.base import Base
from modules.backend.models.gas_sponsorship import GasSponsorship
from modules.backend.models.mission import Mission, MissionStatus, MissionType
from modules.backend.models.receipt import Receipt, ReceiptType
from modules.backend.models.transaction import Transaction, TransactionStatus
from modules.backend.models.user import User

__all__ = [
    "Badge",
    "Base",
    "GasSponsorship",
    "Mission",
    "MissionStatus",
    "MissionType",
    "Receipt",
    "ReceiptType",
    "Transaction",
    "TransactionStatus",
    "User",
]
