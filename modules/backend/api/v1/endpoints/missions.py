"""
Missions API Endpoints.

Mission catalog, creation and the user-driven lifecycle.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from modules.backend.core.dependencies import CurrentUser, DbSession, RequestId, limit_by_user
from modules.backend.core.pagination import (
    PaginationParams,
    create_paginated_response,
    get_pagination_params,
)
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.mission import (
    MissionCreate,
    MissionFailRequest,
    MissionListResponse,
    MissionLogEntry,
    MissionResponse,
    MissionStatusLiteral,
    MissionTemplateResponse,
    MissionTypeLiteral,
)
from modules.backend.services.mission import MissionService, get_catalog

router = APIRouter()


@router.get(
    "",
    summary="List my missions (paginated)",
    description="The caller's missions, newest first, optionally filtered by status and type.",
)
async def list_missions(
    db: DbSession,
    user: CurrentUser,
    request_id: RequestId,
    pagination: PaginationParams = Depends(get_pagination_params),
    status: MissionStatusLiteral | None = Query(default=None, description="Filter by status"),
    type: MissionTypeLiteral | None = Query(default=None, description="Filter by mission type"),
) -> dict[str, Any]:
    service = MissionService(db)
    missions, total = await service.list_missions(
        user,
        status=status,
        mission_type=type,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return create_paginated_response(
        items=missions,
        item_schema=MissionListResponse,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
        request_id=request_id,
    )


@router.get(
    "/catalog",
    response_model=ApiResponse[list[MissionTemplateResponse]],
    summary="Mission catalog",
    description="Templates the Mini App offers before a mission exists.",
)
async def mission_catalog(user: CurrentUser) -> ApiResponse[list[MissionTemplateResponse]]:
    return ApiResponse(
        data=[MissionTemplateResponse.model_validate(t) for t in get_catalog()]
    )


@router.post(
    "",
    response_model=ApiResponse[MissionResponse],
    status_code=201,
    summary="Create a mission",
    description="Create a pending mission from a catalog template or explicit fields.",
)
async def create_mission(
    data: MissionCreate,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[MissionResponse]:
    service = MissionService(db)
    mission = await service.create_mission(user, data)
    return ApiResponse(data=MissionResponse.model_validate(mission))


@router.get(
    "/{mission_id}",
    response_model=ApiResponse[MissionResponse],
    summary="Get a mission",
)
async def get_mission(
    mission_id: str,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[MissionResponse]:
    mission = await MissionService(db).get_mission(user, mission_id)
    return ApiResponse(data=MissionResponse.model_validate(mission))


@router.get(
    "/{mission_id}/logs",
    response_model=ApiResponse[list[MissionLogEntry]],
    summary="Mission work log",
)
async def get_mission_logs(
    mission_id: str,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[list[MissionLogEntry]]:
    logs = await MissionService(db).get_logs(user, mission_id)
    return ApiResponse(data=[MissionLogEntry.model_validate(entry) for entry in logs])


@router.post(
    "/{mission_id}/start",
    response_model=ApiResponse[MissionResponse],
    summary="Start a mission",
    description="Move a pending mission to in_progress.",
    dependencies=[Depends(limit_by_user("mission_start"))],
)
async def start_mission(
    mission_id: str,
    db: DbSession,
    user: CurrentUser,
    request_id: RequestId,
) -> ApiResponse[MissionResponse]:
    mission = await MissionService(db).start_mission(user, mission_id, correlation_id=request_id)
    return ApiResponse(data=MissionResponse.model_validate(mission))


@router.post(
    "/{mission_id}/fail",
    response_model=ApiResponse[MissionResponse],
    summary="Cancel a mission",
    description="Fail a pending or in-progress mission.",
)
async def fail_mission(
    mission_id: str,
    data: MissionFailRequest,
    db: DbSession,
    user: CurrentUser,
    request_id: RequestId,
) -> ApiResponse[MissionResponse]:
    mission = await MissionService(db).fail_mission(
        user, mission_id, data.reason, correlation_id=request_id,
    )
    return ApiResponse(data=MissionResponse.model_validate(mission))
