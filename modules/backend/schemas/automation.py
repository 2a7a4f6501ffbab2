"""
Automation Schemas.
"""

from pydantic import BaseModel, Field

from modules.backend.schemas.mission import MissionListResponse


class ExecuteMissionRequest(BaseModel):
    mission_id: str = Field(..., min_length=1)
    run_inline: bool = Field(
        default=False,
        description="Run in the request instead of queueing to the worker",
    )


class MissionRunResult(BaseModel):
    mission_id: str
    status: str
    transaction_id: str | None = None
    receipt_id: str | None = None
    badge_id: str | None = None
    error: str | None = None


class ExecuteMissionResponse(BaseModel):
    queued: bool
    mission_id: str
    task_id: str | None = None
    result: MissionRunResult | None = None


class AutomationStatusResponse(BaseModel):
    missions_by_status: dict[str, int]
    latest_mission: MissionListResponse | None
    worker_available: bool
