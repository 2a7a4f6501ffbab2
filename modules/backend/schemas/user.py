"""
User Schemas.

Profile payloads for the Mini App's profile screen.
"""

from datetime import datetime

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserProfileResponse(BaseModel):
    """Profile plus impact stats."""

    id: str
    telegram_id: int
    username: str | None
    first_name: str | None
    last_name: str | None
    full_name: str
    display_name: str
    language_code: str
    is_premium: bool
    wallet_address: str | None
    has_wallet: bool
    total_impact: int
    missions_completed: int
    badges_earned: int
    is_active_recently: bool
    last_active_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(BaseModel):
    """Fields a user may change. The wallet is stored checksummed."""

    wallet_address: str | None = Field(
        default=None,
        description="EVM wallet address that receives minted badges",
        examples=["0x52908400098527886E0F7030069857D2E4169EE7"],
    )
    language_code: str | None = Field(
        default=None,
        min_length=2,
        max_length=10,
        description="IETF language tag",
        examples=["en", "ko"],
    )

    @field_validator("wallet_address")
    @classmethod
    def checksum_wallet(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not is_address(value):
            raise ValueError("Invalid wallet address")
        return to_checksum_address(value)
