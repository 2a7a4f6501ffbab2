"""
Event Observability Middleware.

Binds structlog context for every consumed mission or badge event and
logs how long the consumer took.
"""

import time

import structlog
from faststream import BaseMiddleware

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

PAYLOAD_CONTEXT_KEYS = ("mission_id", "badge_id", "user_id")


class EventObservabilityMiddleware(BaseMiddleware):
    """Correlation context and timing for event consumers."""

    async def on_consume(self, msg):
        data = msg if isinstance(msg, dict) else getattr(msg, "decoded_body", None)
        if not isinstance(data, dict):
            data = {}
        payload = data.get("payload") if isinstance(data.get("payload"), dict) else {}

        structlog.contextvars.bind_contextvars(
            event_id=data.get("event_id", "unknown"),
            correlation_id=data.get("correlation_id", "unknown"),
            event_type=data.get("event_type", "unknown"),
            source="events",
            **{key: payload[key] for key in PAYLOAD_CONTEXT_KEYS if key in payload},
        )
        self._start_time = time.monotonic()
        return await super().on_consume(msg)

    async def after_consume(self, err):
        duration_ms = round((time.monotonic() - self._start_time) * 1000, 1)
        if err:
            logger.error("Event processing failed", extra={"duration_ms": duration_ms, "error": str(err)})
        else:
            logger.info("Event processed", extra={"duration_ms": duration_ms})

        structlog.contextvars.unbind_contextvars(
            "event_id", "correlation_id", "event_type", *PAYLOAD_CONTEXT_KEYS,
        )
        return await super().after_consume(err)
