"""
Share API Endpoints.
"""

from fastapi import APIRouter, Request

from modules.backend.core.dependencies import CurrentUser
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.share import ShareRequest, ShareResponse
from modules.backend.services.share import build_share_link

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[ShareResponse],
    summary="Create a share link",
)
async def create_share_link(
    data: ShareRequest,
    request: Request,
    user: CurrentUser,
) -> ApiResponse[ShareResponse]:
    host = request.headers.get("x-forwarded-host") or request.headers.get("host", "")
    proto = request.headers.get("x-forwarded-proto")
    link = build_share_link(data.model_dump(), host=host, proto=proto)
    return ApiResponse(data=ShareResponse(**link))
