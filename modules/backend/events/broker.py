"""
Event Broker.

FastStream RedisBroker on the same Redis instance as the taskiq queue.
The API process only publishes (connected in the lifespan when
events_publish_enabled is on); the event worker also consumes.

Usage:
    from modules.backend.events.broker import get_event_broker

    broker = get_event_broker()
"""

from faststream import FastStream
from faststream.redis import RedisBroker

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

_broker: RedisBroker | None = None
_app: FastStream | None = None
_connected = False


def create_event_broker() -> RedisBroker:
    from modules.backend.core.config import get_redis_url

    broker = RedisBroker(get_redis_url())
    logger.info("Event broker created")
    return broker


def get_event_broker() -> RedisBroker:
    global _broker
    if _broker is None:
        _broker = create_event_broker()
    return _broker


async def connect_event_publisher() -> None:
    """Connect the shared broker for publishing from the API process."""
    global _connected
    if _connected:
        return
    await get_event_broker().connect()
    _connected = True
    logger.info("Event publisher connected")


async def close_event_publisher() -> None:
    global _connected
    if _broker is not None and _connected:
        await _broker.close()
        _connected = False
        logger.info("Event publisher closed")


def create_event_app() -> FastStream:
    """
    FastStream application for the notification worker.

    Invoked through `python run.py --action events`, or directly:
        faststream run --factory modules.backend.events.broker:create_event_app
    """
    global _app
    if _app is not None:
        return _app

    broker = get_event_broker()

    from modules.backend.events.middleware import EventObservabilityMiddleware
    broker.middlewares = [EventObservabilityMiddleware]

    from modules.backend.events.consumers import notifications as _notifications  # noqa: F841

    _app = FastStream(broker)
    logger.info("Event worker application created")
    return _app
