"""
Gas Sponsorship Endpoints.
"""

from fastapi import APIRouter, Depends

from modules.backend.core.dependencies import DbSession, limit_by_ip
from modules.backend.integrations.gas_sponsorship import get_paymaster_client
from modules.backend.schemas.account import require_address
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.gas import (
    EligibilityResponse,
    GasEstimate,
    GasEstimateRequest,
    SponsorRequest,
    SponsorshipResult,
    SponsorshipStats,
)
from modules.backend.services.gas_sponsorship import GasSponsorshipService

router = APIRouter()


@router.post(
    "/sponsor",
    response_model=ApiResponse[SponsorshipResult],
    summary="Sponsor a UserOperation",
    description="Checks the sender's daily allowance, then asks the paymaster to cover gas.",
    dependencies=[Depends(limit_by_ip("blockchain"))],
)
async def sponsor_gas(data: SponsorRequest, db: DbSession) -> ApiResponse[SponsorshipResult]:
    sponsorship = await GasSponsorshipService(db).sponsor(
        data.user_operation.model_dump(), chain_id=data.chain_id,
    )
    return ApiResponse(data=SponsorshipResult(**sponsorship))


@router.get(
    "/eligibility/{address}",
    response_model=ApiResponse[EligibilityResponse],
    summary="Sponsorship eligibility",
)
async def check_eligibility(address: str, db: DbSession) -> ApiResponse[EligibilityResponse]:
    eligibility = await GasSponsorshipService(db).check_eligibility(require_address(address))
    return ApiResponse(data=EligibilityResponse(**eligibility))


@router.post(
    "/estimate",
    response_model=ApiResponse[GasEstimate],
    summary="Estimate unsponsored gas cost",
)
async def estimate_gas(data: GasEstimateRequest) -> ApiResponse[GasEstimate]:
    estimate = await get_paymaster_client().estimate_gas_costs(data.user_operation.model_dump())
    return ApiResponse(data=GasEstimate(**estimate))


@router.get(
    "/stats",
    response_model=ApiResponse[SponsorshipStats],
    summary="Sponsorship stats",
)
async def sponsorship_stats(db: DbSession) -> ApiResponse[SponsorshipStats]:
    stats = await GasSponsorshipService(db).get_sponsorship_stats()
    return ApiResponse(data=SponsorshipStats(**stats))
