"""
Mission Schemas.

Pydantic schemas for mission API request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

MissionTypeLiteral = Literal["carbon_offset", "donation", "petition"]
MissionStatusLiteral = Literal["pending", "in_progress", "completed", "failed"]
CurrencyLiteral = Literal["KRW", "USD"]


class MissionCreate(BaseModel):
    """
    Schema for creating a mission.

    Either reference a catalog template by `template_id`, or give
    type and title explicitly.
    """

    template_id: str | None = Field(
        default=None,
        description="Catalog template to copy",
        examples=["carbon-commute"],
    )
    type: MissionTypeLiteral | None = Field(default=None, description="Mission type")
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    impact: int = Field(default=0, ge=0, le=100, description="Impact score awarded on completion")
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    currency: CurrencyLiteral = "KRW"
    deadline: datetime | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Type-specific parameters, e.g. weight for carbon offsets",
        examples=[{"weight": 20, "weight_unit": "kg"}],
    )

    @model_validator(mode="after")
    def require_template_or_fields(self) -> "MissionCreate":
        if self.template_id is None and (self.type is None or not self.title):
            raise ValueError("Provide template_id, or both type and title")
        return self


class MissionFailRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500, examples=["Cancelled by user"])


class MissionLogEntry(BaseModel):
    timestamp: str
    action: str
    status: Literal["info", "success", "warning", "error"]
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class MissionResponse(BaseModel):
    """Schema for a mission in API responses."""

    id: str
    type: MissionTypeLiteral
    title: str
    description: str | None
    impact: int
    cost: Decimal
    currency: str
    status: str
    progress: int
    logs: list[MissionLogEntry]
    external_api_id: str | None
    external_transaction_id: str | None
    blockchain_tx_hash: str | None
    sbt_token_id: str | None
    receipt_id: str | None
    mission_metadata: dict[str, Any]
    started_at: datetime | None
    completed_at: datetime | None
    failed_at: datetime | None
    deadline: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MissionListResponse(BaseModel):
    """Schema for listing missions."""

    id: str
    type: MissionTypeLiteral
    title: str
    impact: int
    status: str
    progress: int
    created_at: datetime
    completed_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class MissionTemplateResponse(BaseModel):
    """Catalog entry the Mini App shows before a mission exists."""

    id: str
    type: MissionTypeLiteral
    title: str
    description: str
    impact: int
    cost: float
    currency: str
    duration_days: int
    requirements: list[str]

    model_config = ConfigDict(from_attributes=True)
