"""
Event Schemas.

Standardized event envelope and mission/badge event types.
All events published through the event bus use the EventEnvelope base.

Naming convention for event_type: domain.entity.action (dot notation)
Stream naming convention: {domain}:{event-type} (colon-separated)

Usage:
    from modules.backend.events.schemas import MissionCompleted

    event = MissionCompleted(
        source="mission-runner",
        correlation_id=request_id,
        payload={"mission_id": mission.id, "telegram_id": user.telegram_id},
    )
"""

from uuid import uuid4

from pydantic import BaseModel, Field

from modules.backend.core.utils import utc_now


class EventEnvelope(BaseModel):
    """Base event envelope. All events inherit from this.

    Fields:
        event_id: Unique event identifier (auto-generated UUID)
        event_type: Domain event type in dot notation (e.g. missions.mission.completed)
        event_version: Schema version for forward compatibility
        timestamp: ISO 8601 UTC timestamp
        source: Service/module that published the event
        correlation_id: Request or task ID for tracing across services
        payload: Event-specific data
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    event_version: int = 1
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    source: str
    correlation_id: str
    payload: dict


class MissionStarted(EventEnvelope):
    event_type: str = "missions.mission.started"


class MissionCompleted(EventEnvelope):
    """Published when the runner or a webhook completes a mission."""

    event_type: str = "missions.mission.completed"


class MissionFailed(EventEnvelope):
    event_type: str = "missions.mission.failed"


class BadgeMinted(EventEnvelope):
    """Published when a badge SBT is confirmed on-chain."""

    event_type: str = "badges.badge.minted"
