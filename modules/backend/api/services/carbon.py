"""
Carbon Offset Endpoints.
"""

from typing import Any

from fastapi import APIRouter

from modules.backend.integrations.carbon_offset import get_carbon_offset_client
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.carbon import CarbonProject, OffsetEstimate, OffsetRequest

router = APIRouter()


@router.post(
    "/calculate",
    response_model=ApiResponse[OffsetEstimate],
    summary="Estimate an offset",
)
async def calculate_offset(data: OffsetRequest) -> ApiResponse[OffsetEstimate]:
    estimate = await get_carbon_offset_client().calculate_offset(
        data.weight, data.weight_unit, data.currency, data.bundle,
    )
    return ApiResponse(data=OffsetEstimate(**estimate))


@router.post(
    "/purchase",
    response_model=ApiResponse[dict[str, Any]],
    summary="Purchase an offset",
)
async def purchase_offset(data: OffsetRequest) -> ApiResponse[dict[str, Any]]:
    purchase = await get_carbon_offset_client().purchase_offset(
        data.model_dump(exclude_none=True),
    )
    return ApiResponse(data=purchase)


@router.get(
    "/projects",
    response_model=ApiResponse[list[CarbonProject]],
    summary="Offset projects",
)
async def list_projects() -> ApiResponse[list[CarbonProject]]:
    projects = await get_carbon_offset_client().get_projects()
    return ApiResponse(data=[CarbonProject.model_validate(p) for p in projects])
