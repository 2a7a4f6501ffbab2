"""
Scheduled Background Tasks.

Cron tasks registered with schedule labels that the TaskiqScheduler reads
via LabelScheduleSource.

Cron Format:
    ┌───────────── minute (0-59)
    │ ┌───────────── hour (0-23)
    │ │ ┌───────────── day of month (1-31)
    │ │ │ ┌───────────── month (1-12)
    │ │ │ │ ┌───────────── day of week (0-6, Sun=0)
    │ │ │ │ │
    * * * * *

Usage:
    python run.py --action scheduler
"""

from typing import Any
from uuid import uuid4

from modules.backend.core.database import get_session
from modules.backend.core.logging import get_logger
from modules.backend.core.utils import utc_now

logger = get_logger(__name__)


async def expire_stale_missions(limit: int = 100) -> dict[str, Any]:
    """
    Fail in-progress missions whose deadline has passed.

    Runs every 15 minutes.
    """
    from modules.backend.services.mission import MissionService

    async with get_session() as session:
        expired = await MissionService(session).expire_stale_missions(
            limit=limit, correlation_id=str(uuid4()),
        )

    result = {
        "status": "completed",
        "missions_expired": expired,
        "completed_at": utc_now().isoformat(),
    }
    logger.info("Stale missions expired", extra=result)
    return result


async def integration_health_check() -> dict[str, Any]:
    """
    Check the chain RPC and the impact APIs.

    Runs every hour at minute 0.
    """
    from modules.backend.integrations.status import check_blockchain, check_external_apis

    blockchain = await check_blockchain()
    external = await check_external_apis()
    healthy = blockchain["status"] == "healthy" and external["status"] == "healthy"

    result = {
        "status": "healthy" if healthy else "degraded",
        "checks": {"blockchain": blockchain, "external_apis": external},
        "checked_at": utc_now().isoformat(),
    }

    log_level = "info" if healthy else "warning"
    getattr(logger, log_level)("Integration health check completed", extra=result)
    return result


SCHEDULED_TASKS = {
    "expire_stale_missions": {
        "function": expire_stale_missions,
        "schedule": [{"cron": "*/15 * * * *", "kwargs": {"limit": 100}}],
        "retry_on_error": False,
        "description": "Fail in-progress missions past their deadline",
    },
    "integration_health_check": {
        "function": integration_health_check,
        "schedule": [{"cron": "0 * * * *"}],
        "retry_on_error": False,
        "description": "Check chain RPC and impact API reachability hourly",
    },
}

_registered: dict[str, Any] | None = None


def register_scheduled_tasks() -> dict[str, Any]:
    """
    Register scheduled task functions with the Taskiq broker.

    Returns:
        Dict mapping task names to registered task objects
    """
    global _registered
    if _registered is not None:
        return _registered

    from modules.backend.tasks.broker import get_broker

    broker = get_broker()
    registered = {}

    for task_name, config in SCHEDULED_TASKS.items():
        task_kwargs = {
            "task_name": task_name,
            "schedule": config["schedule"],
            "retry_on_error": config.get("retry_on_error", False),
        }
        if "max_retries" in config:
            task_kwargs["max_retries"] = config["max_retries"]

        registered[task_name] = broker.task(**task_kwargs)(config["function"])

    logger.info(
        "Scheduled tasks registered",
        extra={"task_count": len(registered), "tasks": list(registered.keys())},
    )
    _registered = registered
    return registered
