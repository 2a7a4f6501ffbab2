"""
NationBuilder Petition Client.

Petition creation, signing and reporting. Listing and impact reads fall
back to built-in data so the Mini App stays usable when NationBuilder is
unreachable.
"""

from datetime import timedelta
from typing import Any

import httpx

from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.core.logging import get_logger
from modules.backend.core.utils import utc_now
from modules.backend.integrations.http import IntegrationClient

logger = get_logger(__name__)

CATEGORIES: list[dict[str, str]] = [
    {
        "id": "environment",
        "name": "Environmental Protection",
        "description": "Petitions for protecting the environment and responding to climate change",
        "color": "#28a745",
    },
    {
        "id": "social",
        "name": "Social Justice",
        "description": "Petitions for fairness and equality in society",
        "color": "#007bff",
    },
    {
        "id": "education",
        "name": "Education",
        "description": "Petitions for improving education and access to learning",
        "color": "#ffc107",
    },
    {
        "id": "human_rights",
        "name": "Human Rights",
        "description": "Petitions for protecting and advancing human rights",
        "color": "#dc3545",
    },
]

DEFAULT_IMPACT_METRICS: dict[str, int] = {
    "signatures_gained": 1250,
    "social_media_shares": 450,
    "media_mentions": 8,
    "policy_changes": 0,
}


def fallback_petitions() -> list[dict[str, Any]]:
    """Built-in active petitions, shaped like the NationBuilder list response."""
    now = utc_now()
    return [
        {
            "petition": {
                "id": "petition_001",
                "title": "Pass the single-use plastic ban",
                "description": "Ban single-use plastics to protect the marine environment",
                "target_signatures": 10000,
                "current_signatures": 3250,
                "category": "environment",
                "tags": ["plastic", "environment", "ocean"],
                "status": "active",
                "created_at": now.isoformat(),
                "creator": {"id": "org_001", "name": "Green Korea Alliance"},
                "impact_metrics": {
                    "social_media_shares": 15000,
                    "media_mentions": 850,
                    "policy_discussions": 12,
                },
            },
        },
        {
            "petition": {
                "id": "petition_002",
                "title": "Lower public transport fares",
                "description": "Cut public transport fares to reduce the cost of commuting",
                "target_signatures": 5000,
                "current_signatures": 1200,
                "category": "social",
                "tags": ["transport", "welfare", "economy"],
                "status": "active",
                "created_at": (now - timedelta(days=1)).isoformat(),
                "creator": {"id": "org_002", "name": "People First"},
                "impact_metrics": {
                    "social_media_shares": 8000,
                    "media_mentions": 320,
                    "policy_discussions": 5,
                },
            },
        },
    ]


class PetitionClient:
    """Wrapper over the NationBuilder v2 petitions API."""

    service = "nation_builder"

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = get_settings().nation_builder_api_key if api_key is None else api_key
        if not self.api_key:
            logger.warning("NationBuilder API key not configured", extra={"service": self.service})
        self.http = IntegrationClient.from_config(
            self.service,
            get_app_config().integrations.nation_builder,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_categories(self) -> list[dict[str, str]]:
        return list(CATEGORIES)

    async def create_petition(self, request: dict[str, Any]) -> dict[str, Any]:
        try:
            data = await self.http.request_json("POST", "/petitions", json={"petition": request})
        except ExternalServiceError as e:
            raise ExternalServiceError("Failed to create petition", service=self.service) from e

        logger.info(
            "Petition created",
            extra={"petition_id": (data.get("petition") or {}).get("id")},
        )
        return data

    async def get_petition(self, petition_id: str) -> dict[str, Any]:
        try:
            return await self.http.request_json("GET", f"/petitions/{petition_id}")
        except ExternalServiceError as e:
            raise ExternalServiceError("Failed to get petition", service=self.service) from e

    async def get_active_petitions(self, limit: int = 10) -> list[dict[str, Any]]:
        try:
            data = await self.http.request_json(
                "GET",
                "/petitions",
                params={"status": "active", "limit": limit, "sort": "-created_at"},
            )
        except ExternalServiceError:
            logger.warning("Active petitions unavailable, using built-in list")
            return fallback_petitions()[:limit]
        return data.get("petitions") or []

    async def sign_petition(
        self,
        petition_id: str,
        signature: dict[str, Any],
    ) -> dict[str, Any]:
        payload = {
            "signature": {
                **signature,
                "petition_id": petition_id,
                "signed_at": utc_now().isoformat(),
            },
        }
        try:
            data = await self.http.request_json(
                "POST", f"/petitions/{petition_id}/signatures", json=payload,
            )
        except ExternalServiceError as e:
            raise ExternalServiceError("Failed to sign petition", service=self.service) from e

        signature_id = (data.get("signature") or {}).get("id")
        logger.info(
            "Petition signed",
            extra={"petition_id": petition_id, "signature_id": signature_id},
        )
        return {
            "success": True,
            "signature_id": str(signature_id) if signature_id is not None else "",
            "message": "Petition signed successfully",
        }

    async def get_signatures(
        self,
        petition_id: str,
        page: int = 1,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        try:
            data = await self.http.request_json(
                "GET",
                f"/petitions/{petition_id}/signatures",
                params={"page": page, "limit": limit},
            )
        except ExternalServiceError:
            return []
        return data.get("signatures") or []

    async def update_petition_status(self, petition_id: str, status: str) -> dict[str, Any]:
        try:
            return await self.http.request_json(
                "PATCH",
                f"/petitions/{petition_id}",
                json={"petition": {"status": status}},
            )
        except ExternalServiceError as e:
            raise ExternalServiceError(
                "Failed to update petition status", service=self.service,
            ) from e

    async def get_impact_metrics(self, petition_id: str) -> dict[str, Any]:
        try:
            data = await self.http.request_json("GET", f"/petitions/{petition_id}/impact")
        except ExternalServiceError:
            return dict(DEFAULT_IMPACT_METRICS)
        return data.get("metrics") or dict(DEFAULT_IMPACT_METRICS)

    async def validate_api_key(self) -> bool:
        try:
            await self.http.request("GET", "/account")
        except ExternalServiceError:
            return False
        return True


_client: PetitionClient | None = None


def get_petition_client() -> PetitionClient:
    global _client
    if _client is None:
        _client = PetitionClient()
    return _client
