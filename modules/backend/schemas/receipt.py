"""
Receipt Schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReceiptResponse(BaseModel):
    """Receipt with its derived tax information."""

    id: str
    type: str
    amount: Decimal
    currency: str
    receipt_number: str
    issued_at: datetime
    issued_by: str | None
    tax_deductible: bool
    tax_year: int | None
    is_valid_for_tax_deduction: bool
    tax_validation_errors: list[str] = Field(default_factory=list)
    can_be_downloaded: bool
    email_sent: bool
    transaction_id: str | None
    mission_id: str | None
    receipt_metadata: dict[str, Any]

    model_config = ConfigDict(from_attributes=True)


class ReceiptListResponse(BaseModel):
    id: str
    type: str
    amount: Decimal
    currency: str
    receipt_number: str
    issued_at: datetime
    tax_deductible: bool

    model_config = ConfigDict(from_attributes=True)


class ReceiptDownloadResponse(BaseModel):
    download_url: str
