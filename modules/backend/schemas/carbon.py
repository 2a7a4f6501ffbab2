"""
Carbon Offset Schemas.

Request and response shapes for the Cloverly-backed offset endpoints.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class OffsetRequest(BaseModel):
    weight: float = Field(..., gt=0, description="Amount of CO2 to offset", examples=[20])
    weight_unit: Literal["kg", "tonne"] = "kg"
    currency: Literal["KRW", "USD"] = "USD"
    bundle: str | None = Field(default=None, description="Specific project bundle")


class OffsetEstimate(BaseModel):
    cost: float
    currency: str
    equivalent_trees: float = 0


class CarbonProject(BaseModel):
    """Loose view of a Cloverly project; unknown keys pass through."""

    id: str | None = None
    name: str | None = None
    developer: str | None = None
    country: str | None = None
    type: str | None = None
    registry: str | None = None

    model_config = ConfigDict(extra="allow")


class OffsetPurchase(BaseModel):
    offset: dict[str, Any]
