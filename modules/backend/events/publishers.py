"""
Event Publishers.

Mission and badge event publishers. Each method wraps the broker's
publish() with the stream name and event schema.

Publishers check the events_publish_enabled feature flag before publishing.
When disabled, events are skipped without error.

Usage:
    from modules.backend.events.publishers import MissionEventPublisher

    await MissionEventPublisher().mission_completed(mission, user, correlation_id=request_id)
"""

from typing import Any

from modules.backend.core.logging import get_logger
from modules.backend.events.schemas import (
    BadgeMinted,
    EventEnvelope,
    MissionCompleted,
    MissionFailed,
    MissionStarted,
)

logger = get_logger(__name__)


class MissionEventPublisher:
    """Publishes mission lifecycle and badge events to Redis Streams."""

    STREAM_STARTED = "missions:mission-started"
    STREAM_COMPLETED = "missions:mission-completed"
    STREAM_FAILED = "missions:mission-failed"
    STREAM_BADGE_MINTED = "badges:badge-minted"

    def __init__(self, source: str = "mission-service") -> None:
        self.source = source

    async def mission_started(self, mission: Any, user: Any, correlation_id: str) -> None:
        await self._publish(
            self.STREAM_STARTED,
            MissionStarted(
                source=self.source,
                correlation_id=correlation_id,
                payload=self._mission_payload(mission, user),
            ),
        )

    async def mission_completed(self, mission: Any, user: Any, correlation_id: str) -> None:
        await self._publish(
            self.STREAM_COMPLETED,
            MissionCompleted(
                source=self.source,
                correlation_id=correlation_id,
                payload={
                    **self._mission_payload(mission, user),
                    "impact": mission.impact,
                    "external_transaction_id": mission.external_transaction_id,
                },
            ),
        )

    async def mission_failed(
        self, mission: Any, user: Any, reason: str, correlation_id: str,
    ) -> None:
        await self._publish(
            self.STREAM_FAILED,
            MissionFailed(
                source=self.source,
                correlation_id=correlation_id,
                payload={**self._mission_payload(mission, user), "reason": reason},
            ),
        )

    async def badge_minted(self, badge: Any, user: Any, correlation_id: str) -> None:
        await self._publish(
            self.STREAM_BADGE_MINTED,
            BadgeMinted(
                source=self.source,
                correlation_id=correlation_id,
                payload={
                    "badge_id": badge.id,
                    "mission_id": badge.mission_id,
                    "user_id": user.id,
                    "telegram_id": user.telegram_id,
                    "rarity": badge.rarity,
                    "token_id": badge.token_id,
                    "transaction_hash": badge.transaction_hash,
                },
            ),
        )

    @staticmethod
    def _mission_payload(mission: Any, user: Any) -> dict[str, Any]:
        return {
            "mission_id": mission.id,
            "mission_type": mission.type,
            "title": mission.title,
            "user_id": user.id,
            "telegram_id": user.telegram_id,
        }

    async def _publish(self, stream: str, event: EventEnvelope) -> None:
        """Publish an event if the feature flag is enabled."""
        from modules.backend.core.config import get_app_config

        if not get_app_config().features.events_publish_enabled:
            return

        from modules.backend.events.broker import get_event_broker

        broker = get_event_broker()
        await broker.publish(event.model_dump(), stream=stream)
        logger.debug(
            "Event published",
            extra={"stream": stream, "event_type": event.event_type, "event_id": event.event_id},
        )
