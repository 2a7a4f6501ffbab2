"""
Mission Background Tasks.

On-demand tasks dispatched through QueueService:

    run_mission        - execute an in-progress mission end to end
    process_webhook    - apply a third-party webhook to its mission
    mint_mission_badge - mint a completed mission's badge as an SBT

Each task opens its own database session. The plain functions can be
awaited directly; register_tasks() wraps them with broker.task.
"""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from modules.backend.core.database import get_session
from modules.backend.core.logging import get_logger

logger = get_logger(__name__)


async def run_mission(mission_id: str, correlation_id: str | None = None) -> dict[str, Any]:
    """
    Execute a mission against its third-party API.

    Returns:
        The runner result: mission_id, status and the ids it produced
    """
    from modules.backend.services.automation import MissionRunner

    correlation_id = correlation_id or str(uuid4())
    logger.info("Running mission", extra={"mission_id": mission_id, "correlation_id": correlation_id})

    async with get_session() as session:
        result = await MissionRunner(session).run(mission_id, correlation_id=correlation_id)

    logger.info(
        "Mission run finished",
        extra={"mission_id": mission_id, "status": result["status"]},
    )
    return result


async def process_webhook(service: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Match a webhook to its mission by external transaction id and apply it."""
    from modules.backend.services.webhook import WebhookService

    async with get_session() as session:
        return await WebhookService(session).process(service, payload)


async def mint_mission_badge(
    user_id: str,
    mission_id: str,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    from modules.backend.repositories.user import UserRepository
    from modules.backend.services.badge import BadgeService

    async with get_session() as session:
        user = await UserRepository(session).get_by_id(user_id)
        badge = await BadgeService(session).mint_badge(
            user, mission_id=mission_id, correlation_id=correlation_id or str(uuid4()),
        )
        return {
            "badge_id": badge.id,
            "token_id": badge.token_id,
            "transaction_hash": badge.transaction_hash,
        }


TASK_FUNCTIONS: dict[str, Callable[..., Awaitable[dict[str, Any]]]] = {
    "run_mission": run_mission,
    "process_webhook": process_webhook,
    "mint_mission_badge": mint_mission_badge,
}

TASK_CONFIG = {
    "run_mission": {
        "retry_on_error": False,
        "max_retries": 0,
        "description": "Execute an in-progress mission against its impact API",
    },
    "process_webhook": {
        "retry_on_error": True,
        "max_retries": 3,
        "description": "Apply an inbound third-party webhook to its mission",
    },
    "mint_mission_badge": {
        "retry_on_error": True,
        "max_retries": 2,
        "description": "Mint a completed mission's badge as a soulbound token",
    },
}

_registered: dict[str, Any] | None = None


def register_tasks() -> dict[str, Any]:
    """
    Register task functions with the Taskiq broker.

    Returns:
        Dict mapping task names to registered task objects
    """
    global _registered
    if _registered is not None:
        return _registered

    from modules.backend.tasks.broker import get_broker

    broker = get_broker()
    registered = {}
    for task_name, function in TASK_FUNCTIONS.items():
        config = TASK_CONFIG[task_name]
        registered[task_name] = broker.task(
            task_name=task_name,
            retry_on_error=config["retry_on_error"],
            max_retries=config["max_retries"],
        )(function)

    logger.info(
        "Tasks registered",
        extra={"task_count": len(registered), "tasks": list(registered.keys())},
    )
    _registered = registered
    return registered
