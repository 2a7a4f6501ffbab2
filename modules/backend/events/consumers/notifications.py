"""
Notification Event Consumers.

Turn mission and badge events into Telegram messages. Each consumer runs
with the resilience stack configured in events.yaml:
circuit breaker → retry → timeout. Events that still fail are routed to
the dead letter queue.

Run with: python run.py --action events
"""

import asyncio
from collections.abc import Awaitable, Callable

from faststream.redis import StreamSub
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from modules.backend.core.config import get_app_config
from modules.backend.core.config_schema import ConsumerConfigSchema
from modules.backend.core.logging import get_logger
from modules.backend.core.resilience import create_circuit_breaker, log_retry
from modules.backend.events.broker import get_event_broker
from modules.backend.events.schemas import EventEnvelope
from modules.telegram.services.notifications import (
    NotificationResult,
    get_notification_service,
)

logger = get_logger(__name__)

broker = get_event_broker()

_consumers = get_app_config().events.consumers
MISSION_COMPLETED = _consumers["mission-notifier"]
MISSION_FAILED = _consumers["mission-failure-notifier"]
BADGE_MINTED = _consumers["badge-notifier"]

_breakers = {
    name: create_circuit_breaker(
        name,
        fail_max=config.circuit_breaker.fail_max,
        timeout_duration=config.circuit_breaker.timeout_duration,
    )
    for name, config in _consumers.items()
}


class NotificationDeliveryError(ConnectionError):
    """A transient Telegram failure worth retrying."""


async def _send_to_dlq(stream: str, event: EventEnvelope, error: Exception) -> None:
    """Publish a failed event to dlq:{stream} with the error attached."""
    dlq_config = get_app_config().events.dlq
    if not dlq_config.enabled:
        return

    dlq_stream = f"{dlq_config.stream_prefix}:{stream}"
    dlq_payload = event.model_dump()
    dlq_payload["_dlq_error"] = str(error)
    dlq_payload["_dlq_original_stream"] = stream

    try:
        await broker.publish(dlq_payload, stream=dlq_stream)
    except Exception as dlq_err:
        logger.error(
            "Failed to send event to DLQ",
            extra={
                "dlq_stream": dlq_stream,
                "event_id": event.event_id,
                "dlq_error": str(dlq_err),
                "original_error": str(error),
            },
        )
        return

    logger.warning(
        "Event sent to DLQ",
        extra={"dlq_stream": dlq_stream, "event_id": event.event_id, "error": str(error)},
    )


def _raise_if_retryable(result: NotificationResult) -> None:
    if not result.success and result.retryable:
        raise NotificationDeliveryError(result.error or "Telegram delivery failed")


async def _handle_event(
    name: str,
    config: ConsumerConfigSchema,
    event: EventEnvelope,
    notify: Callable[[EventEnvelope], Awaitable[NotificationResult]],
) -> None:
    """Run the notifier under breaker, retry and timeout; DLQ on terminal failure."""

    async def attempt() -> None:
        async with asyncio.timeout(config.processing_timeout):
            _raise_if_retryable(await notify(event))

    async def with_retry() -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(config.retry.max_attempts),
            wait=wait_exponential(
                multiplier=config.retry.backoff_multiplier,
                min=1,
                max=config.retry.backoff_max,
            ),
            retry=retry_if_exception_type((ConnectionError, TimeoutError)),
            before_sleep=log_retry,
            reraise=True,
        )
        await retrying(attempt)

    try:
        await _breakers[name].call_async(with_retry)
    except Exception as exc:
        logger.error(
            "Event processing failed after retries",
            extra={
                "consumer": name,
                "event_type": event.event_type,
                "event_id": event.event_id,
                "error": str(exc),
            },
        )
        await _send_to_dlq(config.stream, event, exc)


async def _notify_mission_completed(event: EventEnvelope) -> NotificationResult:
    payload = event.payload
    return await get_notification_service().mission_completed(
        payload["telegram_id"], payload.get("title", ""), payload.get("impact", 0),
    )


async def _notify_mission_failed(event: EventEnvelope) -> NotificationResult:
    payload = event.payload
    return await get_notification_service().mission_failed(
        payload["telegram_id"], payload.get("title", ""), payload.get("reason") or "Unknown error",
    )


async def _notify_badge_minted(event: EventEnvelope) -> NotificationResult:
    payload = event.payload
    return await get_notification_service().badge_minted(
        payload["telegram_id"],
        payload.get("rarity", ""),
        payload.get("token_id"),
        payload.get("transaction_hash"),
    )


@broker.subscriber(stream=StreamSub(MISSION_COMPLETED.stream, group=MISSION_COMPLETED.group, consumer="notifier-1"))
async def handle_mission_completed(data: dict) -> None:
    event = EventEnvelope(**data)
    logger.info(
        "Processing mission completed event",
        extra={"mission_id": event.payload.get("mission_id"), "correlation_id": event.correlation_id},
    )
    await _handle_event("mission-notifier", MISSION_COMPLETED, event, _notify_mission_completed)


@broker.subscriber(stream=StreamSub(MISSION_FAILED.stream, group=MISSION_FAILED.group, consumer="notifier-1"))
async def handle_mission_failed(data: dict) -> None:
    event = EventEnvelope(**data)
    logger.info(
        "Processing mission failed event",
        extra={"mission_id": event.payload.get("mission_id"), "correlation_id": event.correlation_id},
    )
    await _handle_event("mission-failure-notifier", MISSION_FAILED, event, _notify_mission_failed)


@broker.subscriber(stream=StreamSub(BADGE_MINTED.stream, group=BADGE_MINTED.group, consumer="notifier-1"))
async def handle_badge_minted(data: dict) -> None:
    event = EventEnvelope(**data)
    logger.info(
        "Processing badge minted event",
        extra={"badge_id": event.payload.get("badge_id"), "correlation_id": event.correlation_id},
    )
    await _handle_event("badge-notifier", BADGE_MINTED, event, _notify_badge_minted)
