"""
Automation API Endpoints.

Run missions against their impact APIs and report runner status.
"""

from fastapi import APIRouter

from modules.backend.core.dependencies import CurrentUser, DbSession, RequestId
from modules.backend.schemas.automation import (
    AutomationStatusResponse,
    ExecuteMissionRequest,
    ExecuteMissionResponse,
)
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.mission import MissionListResponse
from modules.backend.services.automation import AutomationService

router = APIRouter()


@router.post(
    "/execute",
    response_model=ApiResponse[ExecuteMissionResponse],
    summary="Execute a mission",
    description=(
        "Start the mission if pending, then queue it for the worker. "
        "Runs in the request when run_inline is set or no worker is available."
    ),
)
async def execute_mission(
    data: ExecuteMissionRequest,
    db: DbSession,
    user: CurrentUser,
    request_id: RequestId,
) -> ApiResponse[ExecuteMissionResponse]:
    outcome = await AutomationService(db).execute(
        user, data.mission_id, correlation_id=request_id, run_inline=data.run_inline,
    )
    return ApiResponse(data=ExecuteMissionResponse.model_validate(outcome))


@router.get(
    "/status",
    response_model=ApiResponse[AutomationStatusResponse],
    summary="Automation status",
)
async def automation_status(
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[AutomationStatusResponse]:
    status = await AutomationService(db).status(user)
    latest = status["latest_mission"]
    return ApiResponse(
        data=AutomationStatusResponse(
            missions_by_status=status["missions_by_status"],
            latest_mission=MissionListResponse.model_validate(latest) if latest else None,
            worker_available=status["worker_available"],
        )
    )
