"""
Unit Test Fixtures.

External services are never reached: HTTP integrations run over
httpx.MockTransport, the blockchain client is a MagicMock, and events
go to an AsyncMock publisher.
"""

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for service tests that should not touch SQLite.

    Usage:
        def test_repository(mock_db_session: AsyncMock):
            repo = UserRepository(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_db_result() -> MagicMock:
    """
    Mock query result for session.execute().

    Usage:
        mock_db_result.scalar_one_or_none.return_value = mission
        mock_db_session.execute.return_value = mock_db_result
    """
    result = MagicMock()
    result.scalar_one_or_none = MagicMock(return_value=None)
    result.scalars = MagicMock()
    result.scalars.return_value.all = MagicMock(return_value=[])
    result.scalars.return_value.first = MagicMock(return_value=None)
    return result


# =============================================================================
# Event Publisher Mock
# =============================================================================


@pytest.fixture
def mock_publisher() -> MagicMock:
    """Stands in for MissionEventPublisher; every publish method is an AsyncMock."""
    publisher = MagicMock()
    publisher.mission_started = AsyncMock()
    publisher.mission_completed = AsyncMock()
    publisher.mission_failed = AsyncMock()
    publisher.badge_minted = AsyncMock()
    return publisher


# =============================================================================
# HTTP Mock Fixtures
# =============================================================================


Route = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Route) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def transport_for() -> Callable[[dict[tuple[str, str], Any]], RecordingTransport]:
    """
    Build a transport from a {(method, path): response} table.

    A response is a JSON body (200), a (status, body) tuple, or an
    httpx.Response. Unknown routes answer 404.

    Usage:
        transport = transport_for({("GET", "/2022-11/projects"): {"projects": []}})
        client = CarbonOffsetClient(api_key="k", transport=transport)
    """

    def build(routes: dict[tuple[str, str], Any]) -> RecordingTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            reply = routes.get((request.method, request.url.path))
            if reply is None:
                return httpx.Response(404, json={"error": "not found"})
            if isinstance(reply, httpx.Response):
                return reply
            if isinstance(reply, tuple):
                status, body = reply
                return httpx.Response(status, json=body)
            return httpx.Response(200, json=reply)

        return RecordingTransport(handler)

    return build


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for asserting log calls.

    Usage:
        with patch("module.logger", mock_logger):
            ...
            mock_logger.warning.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
