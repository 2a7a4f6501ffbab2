"""
User API Endpoints.

Profile and impact stats for the authenticated Telegram user.
"""

from fastapi import APIRouter

from modules.backend.core.dependencies import CurrentUser, DbSession
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.user import UserProfileResponse, UserProfileUpdate
from modules.backend.services.user import UserService

router = APIRouter()


@router.get(
    "/profile",
    response_model=ApiResponse[UserProfileResponse],
    summary="Get my profile",
)
async def get_profile(user: CurrentUser) -> ApiResponse[UserProfileResponse]:
    return ApiResponse(data=UserProfileResponse.model_validate(user))


@router.put(
    "/profile",
    response_model=ApiResponse[UserProfileResponse],
    summary="Update my profile",
    description="Set the wallet that receives minted badges, or the language.",
)
async def update_profile(
    data: UserProfileUpdate,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[UserProfileResponse]:
    user = await UserService(db).update_profile(user, data)
    return ApiResponse(data=UserProfileResponse.model_validate(user))
