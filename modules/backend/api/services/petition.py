"""
Petition Endpoints.
"""

from typing import Any

from fastapi import APIRouter, Query

from modules.backend.integrations.petition import get_petition_client
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.petition import (
    PetitionCategory,
    PetitionRequest,
    SignatureRequest,
    SignatureResult,
)

router = APIRouter()


@router.get(
    "/categories",
    response_model=ApiResponse[list[PetitionCategory]],
    summary="Petition categories",
)
async def list_categories() -> ApiResponse[list[PetitionCategory]]:
    categories = get_petition_client().get_categories()
    return ApiResponse(data=[PetitionCategory.model_validate(c) for c in categories])


@router.get(
    "/active",
    response_model=ApiResponse[list[dict[str, Any]]],
    summary="Active petitions",
)
async def active_petitions(
    limit: int = Query(default=10, ge=1, le=100),
) -> ApiResponse[list[dict[str, Any]]]:
    petitions = await get_petition_client().get_active_petitions(limit)
    return ApiResponse(data=petitions)


@router.post(
    "/create",
    response_model=ApiResponse[dict[str, Any]],
    status_code=201,
    summary="Create a petition",
)
async def create_petition(data: PetitionRequest) -> ApiResponse[dict[str, Any]]:
    petition = await get_petition_client().create_petition(data.model_dump(exclude_none=True))
    return ApiResponse(data=petition)


@router.post(
    "/{petition_id}/sign",
    response_model=ApiResponse[SignatureResult],
    summary="Sign a petition",
)
async def sign_petition(
    petition_id: str,
    data: SignatureRequest,
) -> ApiResponse[SignatureResult]:
    result = await get_petition_client().sign_petition(
        petition_id, data.model_dump(exclude_none=True),
    )
    return ApiResponse(data=SignatureResult(**result))
