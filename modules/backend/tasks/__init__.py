"""
Background Tasks Package.

Taskiq tasks on a Redis list queue.

Two types of tasks:
1. On-demand tasks (modules.backend.tasks.missions), dispatched via QueueService
2. Scheduled tasks (modules.backend.tasks.scheduled), triggered by cron labels

The plain task functions can be awaited directly without Redis:

    from modules.backend.tasks import run_mission
    result = await run_mission(mission_id)

Workers:
    python run.py --action worker
    python run.py --action scheduler

Important:
    Run only ONE scheduler instance to avoid duplicate task execution.
"""

from modules.backend.tasks.broker import get_broker
from modules.backend.tasks.missions import (
    TASK_CONFIG,
    TASK_FUNCTIONS,
    mint_mission_badge,
    process_webhook,
    register_tasks,
    run_mission,
)
from modules.backend.tasks.scheduled import (
    SCHEDULED_TASKS,
    expire_stale_missions,
    integration_health_check,
    register_scheduled_tasks,
)
from modules.backend.tasks.scheduler import get_scheduler

__all__ = [
    "get_broker",
    "get_scheduler",
    "register_tasks",
    "register_scheduled_tasks",
    "TASK_CONFIG",
    "TASK_FUNCTIONS",
    "SCHEDULED_TASKS",
    "run_mission",
    "process_webhook",
    "mint_mission_badge",
    "expire_stale_missions",
    "integration_health_check",
]
