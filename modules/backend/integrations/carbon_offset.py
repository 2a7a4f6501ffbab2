"""
Cloverly Carbon Offset Client.

Estimates and purchases CO2 offsets through the Cloverly 2022-11 API.
"""

from typing import Any

import httpx

from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.core.logging import get_logger
from modules.backend.integrations.http import IntegrationClient

logger = get_logger(__name__)

API_VERSION = "/2022-11"


class CarbonOffsetClient:
    """Thin wrapper over the Cloverly REST API."""

    service = "cloverly"

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = get_settings().cloverly_api_key if api_key is None else api_key
        if not self.api_key:
            logger.warning("Cloverly API key not configured", extra={"service": self.service})
        self.http = IntegrationClient.from_config(
            self.service,
            get_app_config().integrations.cloverly,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def calculate_offset(
        self,
        weight: float,
        weight_unit: str = "kg",
        currency: str = "USD",
        bundle: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "weight": weight,
            "weight_unit": weight_unit,
            "currency": currency,
        }
        if bundle:
            params["bundle"] = bundle

        try:
            data = await self.http.request_json(
                "GET", f"{API_VERSION}/estimates/offset", params=params,
            )
        except ExternalServiceError as e:
            raise ExternalServiceError(
                "Failed to calculate carbon offset", service=self.service,
            ) from e

        offset = data.get("offset") or {}
        return {
            "cost": offset.get("total_cost", 0),
            "currency": offset.get("currency", currency),
            "equivalent_trees": offset.get("equivalent_trees") or 0,
        }

    async def purchase_offset(self, request: dict[str, Any]) -> dict[str, Any]:
        try:
            data = await self.http.request_json(
                "POST", f"{API_VERSION}/purchases/offset", json=request,
            )
        except ExternalServiceError as e:
            raise ExternalServiceError(
                "Failed to purchase carbon offset", service=self.service,
            ) from e

        logger.info(
            "Carbon offset purchased",
            extra={"offset_id": (data.get("offset") or {}).get("id")},
        )
        return data

    async def get_offset_details(self, offset_id: str) -> dict[str, Any]:
        try:
            return await self.http.request_json(
                "GET", f"{API_VERSION}/purchases/offset/{offset_id}",
            )
        except ExternalServiceError as e:
            raise ExternalServiceError(
                "Failed to get offset details", service=self.service,
            ) from e

    async def get_projects(self) -> list[dict[str, Any]]:
        """List available offset projects. Empty on any failure."""
        try:
            data = await self.http.request_json("GET", f"{API_VERSION}/projects")
        except ExternalServiceError:
            logger.warning("Cloverly projects unavailable", extra={"service": self.service})
            return []
        return data.get("projects") or []

    async def validate_api_key(self) -> bool:
        try:
            await self.http.request("GET", f"{API_VERSION}/account")
        except ExternalServiceError:
            return False
        return True


_client: CarbonOffsetClient | None = None


def get_carbon_offset_client() -> CarbonOffsetClient:
    global _client
    if _client is None:
        _client = CarbonOffsetClient()
    return _client
