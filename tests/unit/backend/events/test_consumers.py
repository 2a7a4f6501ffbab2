"""Unit tests for notification event consumers."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from modules.backend.events.consumers import notifications as consumers
from modules.backend.events.schemas import EventEnvelope
from modules.telegram.services.notifications import NotificationResult

CONSUMERS = "modules.backend.events.consumers.notifications"


def _event_dict(**overrides) -> dict:
    base = {
        "event_id": "evt-123",
        "event_type": "missions.mission.completed",
        "event_version": 1,
        "timestamp": "2026-01-01T00:00:00",
        "source": "mission-runner",
        "correlation_id": "req-abc",
        "payload": {
            "mission_id": "m-1",
            "telegram_id": 777000,
            "title": "Carbon Footprint Challenge",
            "impact": 25,
        },
    }
    base.update(overrides)
    return base


@pytest.fixture
def notifier() -> MagicMock:
    service = MagicMock()
    ok = NotificationResult(success=True, user_id=777000, message_id=1)
    service.mission_completed = AsyncMock(return_value=ok)
    service.mission_failed = AsyncMock(return_value=ok)
    service.badge_minted = AsyncMock(return_value=ok)
    with patch(f"{CONSUMERS}.get_notification_service", return_value=service):
        yield service


class TestHandlers:
    @pytest.mark.asyncio
    async def test_mission_completed(self, notifier):
        await consumers.handle_mission_completed(_event_dict())
        notifier.mission_completed.assert_awaited_once_with(777000, "Carbon Footprint Challenge", 25)

    @pytest.mark.asyncio
    async def test_mission_failed(self, notifier):
        data = _event_dict(
            event_type="missions.mission.failed",
            payload={"mission_id": "m-1", "telegram_id": 777000, "title": "Petition", "reason": None},
        )

        await consumers.handle_mission_failed(data)

        notifier.mission_failed.assert_awaited_once_with(777000, "Petition", "Unknown error")

    @pytest.mark.asyncio
    async def test_badge_minted(self, notifier):
        data = _event_dict(
            event_type="badges.badge.minted",
            payload={
                "badge_id": "b-1",
                "telegram_id": 777000,
                "rarity": "Gold",
                "token_id": "99",
                "transaction_hash": "0xab",
            },
        )

        await consumers.handle_badge_minted(data)

        notifier.badge_minted.assert_awaited_once_with(777000, "Gold", "99", "0xab")


class TestHandleEvent:
    @pytest.mark.asyncio
    async def test_retries_retryable_failure(self, notifier):
        """Should retry a network failure and succeed on the next attempt."""
        notifier.mission_completed.side_effect = [
            NotificationResult(success=False, user_id=777000, error="timeout", retryable=True),
            NotificationResult(success=True, user_id=777000, message_id=2),
        ]

        with patch(f"{CONSUMERS}._send_to_dlq", new_callable=AsyncMock) as dlq:
            await consumers.handle_mission_completed(_event_dict())

        assert notifier.mission_completed.await_count == 2
        dlq.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_permanent_failure_is_not_retried(self, notifier):
        """Should accept a non-retryable result such as a blocked bot."""
        notifier.mission_completed.return_value = NotificationResult(
            success=False, user_id=777000, error="Forbidden: bot was blocked by the user",
        )

        with patch(f"{CONSUMERS}._send_to_dlq", new_callable=AsyncMock) as dlq:
            await consumers.handle_mission_completed(_event_dict())

        assert notifier.mission_completed.await_count == 1
        dlq.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_routes_to_dlq_on_error(self, notifier):
        notifier.mission_completed.side_effect = KeyError("telegram_id")

        with patch(f"{CONSUMERS}._send_to_dlq", new_callable=AsyncMock) as dlq:
            await consumers.handle_mission_completed(_event_dict())

        dlq.assert_awaited_once()
        assert dlq.await_args.args[0] == "missions:mission-completed"
        assert isinstance(dlq.await_args.args[1], EventEnvelope)


class TestSendToDlq:
    @pytest.mark.asyncio
    async def test_publishes(self):
        broker = AsyncMock()
        event = EventEnvelope(**_event_dict())

        with patch(f"{CONSUMERS}.broker", broker):
            await consumers._send_to_dlq("missions:mission-completed", event, RuntimeError("boom"))

        payload = broker.publish.call_args.args[0]
        assert payload["_dlq_error"] == "boom"
        assert payload["_dlq_original_stream"] == "missions:mission-completed"
        assert broker.publish.call_args.kwargs["stream"] == "dlq:missions:mission-completed"

    @pytest.mark.asyncio
    async def test_skips_when_disabled(self):
        broker = AsyncMock()
        config = MagicMock()
        config.events.dlq.enabled = False

        with patch(f"{CONSUMERS}.broker", broker), \
             patch(f"{CONSUMERS}.get_app_config", return_value=config):
            await consumers._send_to_dlq("missions:mission-completed", EventEnvelope(**_event_dict()), RuntimeError("x"))

        broker.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_logs_when_dlq_publish_fails(self):
        broker = AsyncMock()
        broker.publish.side_effect = ConnectionError("redis down")

        with patch(f"{CONSUMERS}.broker", broker), patch(f"{CONSUMERS}.logger") as logger:
            await consumers._send_to_dlq("missions:mission-completed", EventEnvelope(**_event_dict()), RuntimeError("x"))

        logger.error.assert_called_once()
