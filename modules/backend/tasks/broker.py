"""
Taskiq Broker Configuration.

Redis list queue for mission runs, webhook processing and badge mints.
Queue name and result expiry come from database.yaml (redis.broker).

Usage:
    # Start worker process
    python run.py --action worker

    # Or directly with taskiq
    taskiq worker modules.backend.tasks.broker:broker
"""

from typing import TYPE_CHECKING

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from taskiq_redis import ListQueueBroker


def create_broker() -> "ListQueueBroker":
    """
    Create and configure the Taskiq broker.

    Returns:
        Configured ListQueueBroker instance
    """
    from taskiq import SimpleRetryMiddleware
    from taskiq_redis import ListQueueBroker, RedisAsyncResultBackend

    from modules.backend.core.config import get_app_config, get_redis_url

    redis_url = get_redis_url()
    broker_config = get_app_config().database.redis.broker

    result_backend = RedisAsyncResultBackend(
        redis_url=redis_url,
        result_ex_time=broker_config.result_expiry_seconds,
    )

    broker = (
        ListQueueBroker(url=redis_url, queue_name=broker_config.queue_name)
        .with_result_backend(result_backend)
        .with_middlewares(SimpleRetryMiddleware(default_retry_count=3))
    )

    logger.debug(
        "Taskiq broker configured",
        extra={
            "queue_name": broker_config.queue_name,
            "result_expiry": broker_config.result_expiry_seconds,
        },
    )
    return broker


_broker: "ListQueueBroker | None" = None
_started = False


def get_broker() -> "ListQueueBroker":
    """
    Get the broker instance, creating it if necessary.

    Returns:
        Configured broker instance
    """
    global _broker
    if _broker is None:
        from taskiq import TaskiqEvents

        _broker = create_broker()

        @_broker.on_event(TaskiqEvents.WORKER_STARTUP)
        async def on_startup(_state) -> None:
            logger.info("Taskiq worker starting up")

        @_broker.on_event(TaskiqEvents.WORKER_SHUTDOWN)
        async def on_shutdown(_state) -> None:
            from modules.backend.core.database import dispose_engine

            await dispose_engine()
            logger.info("Taskiq worker shutting down")

    return _broker


def is_broker_started() -> bool:
    """True once this process has started the broker and can enqueue."""
    return _started


async def start_broker() -> None:
    """Start the broker in the API process so tasks can be enqueued."""
    global _started
    if _started:
        return
    from modules.backend.tasks.missions import register_tasks

    broker = get_broker()
    register_tasks()
    await broker.startup()
    _started = True
    logger.info("Task broker started")


async def stop_broker() -> None:
    global _started
    if _broker is not None and _started:
        await _broker.shutdown()
        _started = False
        logger.info("Task broker stopped")


def __getattr__(name: str):
    """Lazy `broker` attribute for the taskiq CLI; registers every task first."""
    if name == "broker":
        from modules.backend.tasks.missions import register_tasks
        from modules.backend.tasks.scheduled import register_scheduled_tasks

        broker = get_broker()
        register_tasks()
        register_scheduled_tasks()
        return broker
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
