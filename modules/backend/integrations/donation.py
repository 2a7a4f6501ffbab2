"""
1ClickImpact Donation Client.

Creates, processes and reports on donations. The charity directory is a
curated built-in list; everything else goes to the 1ClickImpact API.
"""

from typing import Any

import httpx

from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.core.logging import get_logger
from modules.backend.core.utils import utc_now
from modules.backend.integrations.http import IntegrationClient

logger = get_logger(__name__)

CHARITIES: list[dict[str, Any]] = [
    {
        "id": "charity_001",
        "name": "Global Poverty Relief",
        "description": "Education and basic needs for children living in poverty worldwide",
        "category": "education",
        "country": "Global",
        "rating": 4.8,
        "impact_metrics": {
            "total_raised": 2_500_000,
            "people_helped": 50_000,
            "projects_completed": 120,
        },
    },
    {
        "id": "charity_002",
        "name": "Environmental Protection Association",
        "description": "Protecting ecosystems and responding to climate change",
        "category": "environment",
        "country": "Korea",
        "rating": 4.6,
        "impact_metrics": {
            "total_raised": 1_800_000,
            "people_helped": 75_000,
            "projects_completed": 85,
        },
    },
    {
        "id": "charity_003",
        "name": "International Red Cross",
        "description": "Disaster relief and humanitarian aid",
        "category": "disaster_relief",
        "country": "Global",
        "rating": 4.9,
        "impact_metrics": {
            "total_raised": 5_000_000,
            "people_helped": 200_000,
            "projects_completed": 500,
        },
    },
    {
        "id": "charity_004",
        "name": "Child Protection Society",
        "description": "Protecting children's rights and supporting healthy growth",
        "category": "children",
        "country": "Korea",
        "rating": 4.7,
        "impact_metrics": {
            "total_raised": 1_200_000,
            "people_helped": 15_000,
            "projects_completed": 200,
        },
    },
]

DEFAULT_IMPACT_METRICS: dict[str, int] = {
    "people_helped": 5,
    "meals_provided": 25,
    "education_provided": 2,
    "environmental_impact": 10,
}


class DonationClient:
    """Wrapper over the 1ClickImpact v1 API."""

    service = "one_click_impact"

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = get_settings().one_click_impact_api_key if api_key is None else api_key
        if not self.api_key:
            logger.warning("1ClickImpact API key not configured", extra={"service": self.service})
        self.http = IntegrationClient.from_config(
            self.service,
            get_app_config().integrations.one_click_impact,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_charities(self, category: str | None = None) -> list[dict[str, Any]]:
        if not category:
            return list(CHARITIES)
        return [c for c in CHARITIES if c["category"] == category]

    async def create_donation(self, request: dict[str, Any]) -> dict[str, Any]:
        try:
            data = await self.http.request_json("POST", "/donations", json=request)
        except ExternalServiceError as e:
            raise ExternalServiceError("Failed to create donation", service=self.service) from e

        logger.info(
            "Donation created",
            extra={"donation_id": (data.get("donation") or {}).get("id")},
        )
        return data

    async def process_donation(
        self,
        donation_id: str,
        payment_method: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            data = await self.http.request_json(
                "POST",
                f"/donations/{donation_id}/process",
                json={"payment_method": payment_method},
            )
        except ExternalServiceError as e:
            raise ExternalServiceError("Failed to process donation", service=self.service) from e

        result = {
            "status": data.get("status"),
            "transaction_id": data.get("transaction_id"),
        }
        if data.get("receipt_url"):
            result["receipt_url"] = data["receipt_url"]
        return result

    async def get_donation_status(self, donation_id: str) -> dict[str, Any]:
        try:
            return await self.http.request_json("GET", f"/donations/{donation_id}")
        except ExternalServiceError as e:
            raise ExternalServiceError(
                "Failed to get donation status", service=self.service,
            ) from e

    async def get_impact_metrics(self, donation_id: str) -> dict[str, Any]:
        """Impact figures for a donation, or conservative defaults when unavailable."""
        try:
            data = await self.http.request_json("GET", f"/donations/{donation_id}/impact")
        except ExternalServiceError:
            logger.warning(
                "Donation impact unavailable, using defaults",
                extra={"donation_id": donation_id},
            )
            return dict(DEFAULT_IMPACT_METRICS)
        return data.get("metrics") or dict(DEFAULT_IMPACT_METRICS)

    async def generate_receipt(self, donation_id: str) -> dict[str, Any]:
        try:
            data = await self.http.request_json("POST", f"/donations/{donation_id}/receipt")
        except ExternalServiceError as e:
            raise ExternalServiceError("Failed to generate receipt", service=self.service) from e

        return {
            "receipt_id": data.get("receipt_number") or data.get("receipt_id"),
            "receipt_url": data.get("receipt_url"),
            "tax_deductible_amount": data.get("tax_deductible_amount"),
            "issued_at": data.get("issued_at") or utc_now().isoformat(),
        }

    async def validate_api_key(self) -> bool:
        try:
            await self.http.request("GET", "/account")
        except ExternalServiceError:
            return False
        return True


_client: DonationClient | None = None


def get_donation_client() -> DonationClient:
    global _client
    if _client is None:
        _client = DonationClient()
    return _client
