"""
Queue Service.

Facade over the taskiq broker. Jobs are enqueued when this process has
started the broker; otherwise they run inline, if the
tasks_inline_fallback_enabled flag allows it.
"""

from typing import Any

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import ExternalServiceError, ValidationError
from modules.backend.core.logging import get_logger
from modules.backend.tasks.broker import is_broker_started
from modules.backend.tasks.missions import TASK_FUNCTIONS, register_tasks

logger = get_logger(__name__)


class QueueService:
    """Dispatch named background jobs."""

    def is_available(self) -> bool:
        return is_broker_started()

    async def add_job(self, queue_name: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Enqueue a job by task name, or run it inline when no broker is running.

        Returns:
            {"queued": True, "task_id": ...} or {"queued": False, "result": ...}

        Raises:
            ValidationError: Unknown job name
            ExternalServiceError: No broker and inline fallback disabled
        """
        if queue_name not in TASK_FUNCTIONS:
            raise ValidationError(f"Unknown job: {queue_name}")

        if self.is_available():
            task = await register_tasks()[queue_name].kiq(**data)
            logger.info(
                "Job added to queue",
                extra={"job": queue_name, "task_id": task.task_id},
            )
            return {"queued": True, "task_id": task.task_id}

        if not get_app_config().features.tasks_inline_fallback_enabled:
            raise ExternalServiceError("Task queue unavailable", service="redis")

        logger.info("Job running inline", extra={"job": queue_name})
        result = await TASK_FUNCTIONS[queue_name](**data)
        return {"queued": False, "result": result}


_queue_service: QueueService | None = None


def get_queue_service() -> QueueService:
    global _queue_service
    if _queue_service is None:
        _queue_service = QueueService()
    return _queue_service
