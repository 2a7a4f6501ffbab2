"""
Gas Sponsorship Schemas.
"""

from pydantic import BaseModel, Field

from modules.backend.schemas.account import UserOperation


class SponsorRequest(BaseModel):
    user_operation: UserOperation
    chain_id: int | None = Field(default=None, description="Defaults to the configured chain")


class SponsorshipResult(BaseModel):
    paymasterAndData: str
    preVerificationGas: str | None = None
    verificationGasLimit: str | None = None
    callGasLimit: str | None = None


class EligibilityResponse(BaseModel):
    eligible: bool
    remaining_sponsorships: int
    reason: str | None = None


class GasEstimateRequest(BaseModel):
    user_operation: UserOperation


class GasEstimate(BaseModel):
    callGasLimit: str
    verificationGasLimit: str
    preVerificationGas: str
    totalGasCost: str


class SponsorshipStats(BaseModel):
    total_sponsored: int
    active_users: int
    sponsored_today: int
