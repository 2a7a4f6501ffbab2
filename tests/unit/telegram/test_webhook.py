"""
Unit tests for the Telegram webhook router.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from modules.telegram.webhook import SECRET_HEADER, get_webhook_router, get_webhook_url

UPDATE = {"update_id": 4242}


@pytest.fixture
def dispatcher() -> MagicMock:
    dp = MagicMock()
    dp.feed_update = AsyncMock()
    return dp


def _client(dp: MagicMock, secret: str) -> TestClient:
    with patch(
        "modules.telegram.webhook.get_settings",
        return_value=MagicMock(telegram_webhook_secret=secret),
    ):
        router = get_webhook_router(MagicMock(), dp)
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


class TestWebhookRouter:
    def test_rejects_wrong_secret(self, dispatcher):
        client = _client(dispatcher, "s3cret")

        response = client.post("/webhook/telegram", json=UPDATE, headers={SECRET_HEADER: "nope"})

        assert response.status_code == 403
        dispatcher.feed_update.assert_not_awaited()

    def test_rejects_missing_secret(self, dispatcher):
        client = _client(dispatcher, "s3cret")

        response = client.post("/webhook/telegram", json=UPDATE)

        assert response.status_code == 403

    def test_feeds_update(self, dispatcher):
        client = _client(dispatcher, "s3cret")

        response = client.post("/webhook/telegram", json=UPDATE, headers={SECRET_HEADER: "s3cret"})

        assert response.status_code == 200
        update = dispatcher.feed_update.await_args.args[1]
        assert update.update_id == 4242

    def test_handler_error_still_acknowledged(self, dispatcher):
        """Should answer 200 so Telegram does not redeliver a failing update."""
        dispatcher.feed_update.side_effect = RuntimeError("handler broke")
        client = _client(dispatcher, "")

        response = client.post("/webhook/telegram", json=UPDATE)

        assert response.status_code == 200

    def test_health(self, dispatcher):
        response = _client(dispatcher, "").get("/webhook/telegram/health")

        assert response.json() == {"status": "healthy", "webhook_path": "/webhook/telegram"}


def test_webhook_url():
    assert get_webhook_url("https://api.eco-touch.app/") == "https://api.eco-touch.app/webhook/telegram"
