"""
Donation Endpoints.
"""

from typing import Any

from fastapi import APIRouter, Query

from modules.backend.integrations.donation import get_donation_client
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.donation import Charity, DonationImpact, DonationRequest

router = APIRouter()


@router.get(
    "/charities",
    response_model=ApiResponse[list[Charity]],
    summary="List charities",
)
async def list_charities(
    category: str | None = Query(default=None, description="Filter by category"),
) -> ApiResponse[list[Charity]]:
    charities = get_donation_client().get_charities(category)
    return ApiResponse(data=[Charity.model_validate(c) for c in charities])


@router.post(
    "/create",
    response_model=ApiResponse[dict[str, Any]],
    summary="Create a donation",
)
async def create_donation(data: DonationRequest) -> ApiResponse[dict[str, Any]]:
    donation = await get_donation_client().create_donation(data.model_dump(exclude_none=True))
    return ApiResponse(data=donation)


@router.get(
    "/{donation_id}/impact",
    response_model=ApiResponse[DonationImpact],
    summary="Donation impact",
)
async def donation_impact(donation_id: str) -> ApiResponse[DonationImpact]:
    metrics = await get_donation_client().get_impact_metrics(donation_id)
    return ApiResponse(data=DonationImpact.model_validate(metrics))
