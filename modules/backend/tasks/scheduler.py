"""
Task Scheduler Configuration.

TaskiqScheduler over LabelScheduleSource; schedules come from the labels
set in tasks/scheduled.py.

Usage:
    python run.py --action scheduler

    # Or directly with taskiq
    taskiq scheduler modules.backend.tasks.scheduler:scheduler

Important:
    Run only ONE scheduler instance. Multiple instances will cause
    duplicate task execution.
"""

from typing import TYPE_CHECKING

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from taskiq import TaskiqScheduler


def create_scheduler() -> "TaskiqScheduler":
    from taskiq import TaskiqScheduler
    from taskiq.schedule_sources import LabelScheduleSource

    from modules.backend.tasks.broker import get_broker
    from modules.backend.tasks.scheduled import register_scheduled_tasks

    broker = get_broker()
    registered = register_scheduled_tasks()

    scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])
    logger.info("Taskiq scheduler configured", extra={"tasks": list(registered.keys())})
    return scheduler


_scheduler: "TaskiqScheduler | None" = None


def get_scheduler() -> "TaskiqScheduler":
    global _scheduler
    if _scheduler is None:
        _scheduler = create_scheduler()
    return _scheduler


def __getattr__(name: str):
    """Lazy attribute access for the taskiq CLI."""
    if name == "scheduler":
        return get_scheduler()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
