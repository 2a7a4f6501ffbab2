"""
Donation Schemas.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CharityImpact(BaseModel):
    total_raised: int
    people_helped: int
    projects_completed: int


class Charity(BaseModel):
    id: str
    name: str
    description: str
    category: str
    country: str
    rating: float
    impact_metrics: CharityImpact


class DonationRequest(BaseModel):
    amount: float = Field(..., gt=0, le=1_000_000, examples=[10000])
    currency: Literal["KRW", "USD"] = "KRW"
    recipient_id: str | None = Field(default=None, description="Charity id", examples=["charity_002"])
    anonymous: bool = False
    metadata: dict[str, Any] | None = None


class PaymentMethod(BaseModel):
    type: Literal["card", "bank_transfer", "crypto"] = "card"
    token: str | None = Field(default=None, description="Card payment token")
    wallet_address: str | None = Field(default=None, description="Crypto payer wallet")


class DonationImpact(BaseModel):
    people_helped: int = 0
    meals_provided: int = 0
    education_provided: int = 0
    environmental_impact: int = 0

    model_config = ConfigDict(extra="allow")
