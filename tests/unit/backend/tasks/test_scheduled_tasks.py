"""
Unit tests for scheduled background tasks.

Task functions are awaited directly, bypassing broker registration which
requires Redis. get_session is swapped for the SQLite test session.
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from modules.backend.core.utils import utc_now
from modules.backend.tasks.scheduled import (
    SCHEDULED_TASKS,
    expire_stale_missions,
    integration_health_check,
)


@pytest.fixture
def task_session(db_session):
    @asynccontextmanager
    async def _session():
        yield db_session

    with patch("modules.backend.tasks.scheduled.get_session", _session):
        yield db_session


class TestExpireStaleMissions:
    @pytest.mark.asyncio
    async def test_expires_overdue(self, task_session, make_user, make_mission):
        user = await make_user()
        overdue = await make_mission(user, status="in_progress", deadline=utc_now() - timedelta(minutes=5))

        result = await expire_stale_missions()

        assert result["status"] == "completed"
        assert result["missions_expired"] == 1
        assert "completed_at" in result
        assert overdue.status == "failed"

    @pytest.mark.asyncio
    async def test_nothing_to_expire(self, task_session):
        result = await expire_stale_missions(limit=10)
        assert result["missions_expired"] == 0


class TestIntegrationHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy(self):
        with patch(
            "modules.backend.integrations.status.check_blockchain",
            new=AsyncMock(return_value={"status": "healthy", "block_number": 1}),
        ), patch(
            "modules.backend.integrations.status.check_external_apis",
            new=AsyncMock(return_value={"status": "healthy", "services": {}}),
        ):
            result = await integration_health_check()

        assert result["status"] == "healthy"
        assert result["checks"]["blockchain"]["block_number"] == 1
        assert "checked_at" in result

    @pytest.mark.asyncio
    async def test_degraded_when_rpc_down(self):
        with patch(
            "modules.backend.integrations.status.check_blockchain",
            new=AsyncMock(return_value={"status": "unhealthy", "error": "blockchain request failed"}),
        ), patch(
            "modules.backend.integrations.status.check_external_apis",
            new=AsyncMock(return_value={"status": "healthy", "services": {}}),
        ), patch("modules.backend.tasks.scheduled.logger") as logger:
            result = await integration_health_check()

        assert result["status"] == "degraded"
        logger.warning.assert_called_once()


class TestScheduledTaskConfig:
    def test_every_task_has_cron(self):
        for name, config in SCHEDULED_TASKS.items():
            assert config["schedule"][0]["cron"], name
            assert callable(config["function"])

    def test_expiry_runs_every_fifteen_minutes(self):
        assert SCHEDULED_TASKS["expire_stale_missions"]["schedule"][0]["cron"] == "*/15 * * * *"
