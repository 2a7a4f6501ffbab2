"""
Badge and SBT Schemas.
"""

from datetime import datetime
from typing import Any, Literal

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator


class BadgeResponse(BaseModel):
    id: str
    mission_id: str
    mission_type: str
    level: Literal["bronze", "silver", "gold", "platinum"]
    rarity: str
    impact: int
    minted: bool
    token_id: str | None
    transaction_hash: str | None
    token_uri: str | None
    minted_at: datetime | None
    badge_metadata: dict[str, Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MintBadgeRequest(BaseModel):
    mission_id: str = Field(..., min_length=1, description="Completed mission whose badge to mint")


class SbtMintRequest(BaseModel):
    """Direct mint request from the Mini App's wallet screen."""

    recipient: str = Field(..., description="Wallet receiving the soulbound token")
    mission_type: Literal["carbon_offset", "donation", "petition"]
    impact_score: int = Field(..., ge=0, le=1000)
    mission_title: str = Field(..., min_length=1, max_length=255)
    mission_id: str | None = Field(
        default=None,
        description="Derives a stable token id when given; random otherwise",
    )

    @field_validator("recipient")
    @classmethod
    def checksum_recipient(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError("Invalid recipient address")
        return to_checksum_address(value)


class SbtMintResult(BaseModel):
    success: bool
    token_id: str
    transaction_hash: str | None = None
    token_uri: str | None = None
    error: str | None = None


class SbtBurnResult(BaseModel):
    success: bool
    transaction_hash: str | None = None
    error: str | None = None


class TokenInfoResponse(BaseModel):
    token_id: str
    owner: str | None
    token_uri: str | None
    locked: bool


class BalanceResponse(BaseModel):
    address: str
    balance: int


class SbtStatsResponse(BaseModel):
    total_supply: int
