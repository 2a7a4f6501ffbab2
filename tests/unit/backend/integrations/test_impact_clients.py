"""
Unit tests for the Cloverly, 1ClickImpact and NationBuilder clients.

Every client runs over a MockTransport; paths include the base URL's
version prefix.
"""

import pytest

from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.integrations.carbon_offset import CarbonOffsetClient
from modules.backend.integrations.donation import DEFAULT_IMPACT_METRICS, DonationClient
from modules.backend.integrations.petition import PetitionClient


class TestCarbonOffsetClient:
    @pytest.mark.asyncio
    async def test_calculate_offset(self, transport_for):
        transport = transport_for({
            ("GET", "/2022-11/estimates/offset"): {
                "offset": {"total_cost": 4.2, "currency": "USD", "equivalent_trees": 3},
            },
        })
        client = CarbonOffsetClient(api_key="k", transport=transport)

        result = await client.calculate_offset(120.5, bundle="forestry")

        assert result == {"cost": 4.2, "currency": "USD", "equivalent_trees": 3}
        request = transport.requests[0]
        assert request.headers["Authorization"] == "Bearer k"
        assert request.url.params["weight"] == "120.5"
        assert request.url.params["bundle"] == "forestry"

    @pytest.mark.asyncio
    async def test_purchase_failure(self, transport_for):
        client = CarbonOffsetClient(api_key="k", transport=transport_for({
            ("POST", "/2022-11/purchases/offset"): (400, {"error": "weight required"}),
        }))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.purchase_offset({})

        assert exc_info.value.message == "Failed to purchase carbon offset"
        assert exc_info.value.service == "cloverly"

    @pytest.mark.asyncio
    async def test_projects_empty_on_failure(self, transport_for):
        client = CarbonOffsetClient(api_key="k", transport=transport_for({}))

        assert await client.get_projects() == []

    @pytest.mark.asyncio
    async def test_validate_api_key(self, transport_for):
        ok = CarbonOffsetClient(api_key="k", transport=transport_for({("GET", "/2022-11/account"): {}}))
        bad = CarbonOffsetClient(api_key="k", transport=transport_for({("GET", "/2022-11/account"): (401, {})}))

        assert await ok.validate_api_key() is True
        assert await bad.validate_api_key() is False

    def test_not_configured_without_key(self, transport_for):
        assert CarbonOffsetClient(api_key="", transport=transport_for({})).is_configured is False


class TestDonationClient:
    def test_charities_by_category(self, transport_for):
        client = DonationClient(api_key="k", transport=transport_for({}))

        environment = client.get_charities("environment")

        assert [c["id"] for c in environment] == ["charity_002"]
        assert len(client.get_charities()) == 4

    @pytest.mark.asyncio
    async def test_process_donation(self, transport_for):
        transport = transport_for({
            ("POST", "/v1/donations/don_1/process"): {
                "status": "completed",
                "transaction_id": "tx_9",
                "receipt_url": "https://1clickimpact.test/r/9",
            },
        })
        client = DonationClient(api_key="k", transport=transport)

        result = await client.process_donation("don_1", {"type": "card"})

        assert result == {
            "status": "completed",
            "transaction_id": "tx_9",
            "receipt_url": "https://1clickimpact.test/r/9",
        }
        assert transport.last_json() == {"payment_method": {"type": "card"}}

    @pytest.mark.asyncio
    async def test_impact_defaults_when_unavailable(self, transport_for):
        client = DonationClient(api_key="k", transport=transport_for({}))

        assert await client.get_impact_metrics("don_1") == DEFAULT_IMPACT_METRICS

    @pytest.mark.asyncio
    async def test_generate_receipt(self, transport_for):
        client = DonationClient(api_key="k", transport=transport_for({
            ("POST", "/v1/donations/don_1/receipt"): {
                "receipt_number": "R-1",
                "tax_deductible_amount": 25,
            },
        }))

        receipt = await client.generate_receipt("don_1")

        assert receipt["receipt_id"] == "R-1"
        assert receipt["tax_deductible_amount"] == 25
        assert receipt["issued_at"]


class TestPetitionClient:
    @pytest.mark.asyncio
    async def test_sign_petition(self, transport_for):
        transport = transport_for({
            ("POST", "/api/v2/petitions/p_1/signatures"): {"signature": {"id": 314}},
        })
        client = PetitionClient(api_key="k", transport=transport)

        result = await client.sign_petition("p_1", {"email": "mina@example.com"})

        assert result == {
            "success": True,
            "signature_id": "314",
            "message": "Petition signed successfully",
        }
        signature = transport.last_json()["signature"]
        assert signature["petition_id"] == "p_1"
        assert signature["email"] == "mina@example.com"
        assert "signed_at" in signature

    @pytest.mark.asyncio
    async def test_sign_failure(self, transport_for):
        client = PetitionClient(api_key="k", transport=transport_for({}))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.sign_petition("p_1", {})

        assert exc_info.value.message == "Failed to sign petition"

    @pytest.mark.asyncio
    async def test_active_petitions_fallback(self, transport_for):
        client = PetitionClient(api_key="k", transport=transport_for({}))

        petitions = await client.get_active_petitions(limit=1)

        assert len(petitions) == 1
        assert petitions[0]["petition"]["id"] == "petition_001"

    @pytest.mark.asyncio
    async def test_active_petitions(self, transport_for):
        transport = transport_for({("GET", "/api/v2/petitions"): {"petitions": [{"id": "p_9"}]}})
        client = PetitionClient(api_key="k", transport=transport)

        assert await client.get_active_petitions() == [{"id": "p_9"}]
        assert transport.requests[0].url.params["status"] == "active"

    def test_categories(self, transport_for):
        categories = PetitionClient(api_key="k", transport=transport_for({})).get_categories()

        assert [c["id"] for c in categories] == ["environment", "social", "education", "human_rights"]
