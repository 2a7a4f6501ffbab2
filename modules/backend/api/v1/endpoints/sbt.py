"""
Badge API Endpoints.

The caller's badges and minting them as soulbound tokens.
"""

from fastapi import APIRouter, Depends

from modules.backend.core.dependencies import CurrentUser, DbSession, RequestId, limit_by_user
from modules.backend.schemas.badge import BadgeResponse, MintBadgeRequest
from modules.backend.schemas.base import ApiResponse
from modules.backend.services.badge import BadgeService

router = APIRouter()


@router.get(
    "/badges",
    response_model=ApiResponse[list[BadgeResponse]],
    summary="List my badges",
)
async def list_badges(db: DbSession, user: CurrentUser) -> ApiResponse[list[BadgeResponse]]:
    badges = await BadgeService(db).list_badges(user)
    return ApiResponse(data=[BadgeResponse.model_validate(b) for b in badges])


@router.post(
    "/mint",
    response_model=ApiResponse[BadgeResponse],
    summary="Mint a mission badge",
    description="Mint the badge of a completed mission to the caller's wallet.",
    dependencies=[Depends(limit_by_user("blockchain"))],
)
async def mint_badge(
    data: MintBadgeRequest,
    db: DbSession,
    user: CurrentUser,
    request_id: RequestId,
) -> ApiResponse[BadgeResponse]:
    badge = await BadgeService(db).mint_badge(
        user, mission_id=data.mission_id, correlation_id=request_id,
    )
    return ApiResponse(data=BadgeResponse.model_validate(badge))
