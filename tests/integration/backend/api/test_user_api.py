"""
Integration Tests for the profile and badge endpoints.
"""

import pytest
from httpx import AsyncClient

from modules.backend.models import User

PROFILE = "/api/v1/user/profile"


class TestProfile:
    @pytest.mark.asyncio
    async def test_first_request_creates_user(self, client: AsyncClient, api, auth_headers, db_session):
        response = await client.get(PROFILE, headers=auth_headers)

        profile = api.assert_success(response)["data"]
        assert profile["telegram_id"] == 777000
        assert profile["username"] == "mina_eco"
        assert profile["language_code"] == "ko"
        assert profile["has_wallet"] is False
        assert profile["total_impact"] == 0
        assert await db_session.get(User, profile["id"]) is not None

    @pytest.mark.asyncio
    async def test_repeat_requests_reuse_user(self, client: AsyncClient, api, auth_headers):
        first = api.assert_success(await client.get(PROFILE, headers=auth_headers))["data"]
        second = api.assert_success(await client.get(PROFILE, headers=auth_headers))["data"]

        assert first["id"] == second["id"]

    @pytest.mark.asyncio
    async def test_set_wallet(self, client: AsyncClient, api, auth_headers):
        response = await client.put(
            PROFILE,
            json={"wallet_address": "0x52908400098527886e0f7030069857d2e4169ee7"},
            headers=auth_headers,
        )

        profile = api.assert_success(response)["data"]
        assert profile["wallet_address"] == "0x52908400098527886E0F7030069857D2E4169EE7"
        assert profile["has_wallet"] is True

    @pytest.mark.asyncio
    async def test_invalid_wallet(self, client: AsyncClient, api, auth_headers):
        response = await client.put(PROFILE, json={"wallet_address": "0x123"}, headers=auth_headers)

        api.assert_validation_error(response, field="wallet_address")


class TestBadges:
    @pytest.mark.asyncio
    async def test_empty(self, client: AsyncClient, api, auth_headers):
        response = await client.get("/api/v1/sbt/badges", headers=auth_headers)

        assert api.assert_success(response)["data"] == []

    @pytest.mark.asyncio
    async def test_mint_requires_wallet(self, client: AsyncClient, api, auth_headers):
        response = await client.post(
            "/api/v1/sbt/mint", json={"mission_id": "missing"}, headers=auth_headers,
        )

        data = api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert data["error"]["message"] == "Wallet address required"
