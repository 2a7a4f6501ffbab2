"""
Integration Tests for receipts and share links.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.models import Mission
from modules.backend.models.transaction import Transaction
from modules.backend.services.receipt import ReceiptService

RECEIPTS = "/api/v1/receipts"


@pytest.fixture
def issue_receipt(client: AsyncClient, auth_headers, db_session: AsyncSession):
    """Create a donation mission through the API and issue its receipt."""

    async def _issue(amount: str = "10000", pdf_url: str | None = None) -> str:
        created = await client.post(
            "/api/v1/missions", json={"template_id": "eco-donation"}, headers=auth_headers,
        )
        mission = await db_session.get(Mission, created.json()["data"]["id"])
        transaction = Transaction(
            user_id=mission.user_id,
            mission_id=mission.id,
            type=mission.type,
            amount=Decimal(amount),
            currency="KRW",
            status="completed",
        )
        db_session.add(transaction)
        await db_session.flush()
        receipt = await ReceiptService(db_session).issue_for_transaction(
            mission, transaction, pdf_url=pdf_url,
        )
        return receipt.id

    return _issue


class TestReceipts:
    @pytest.mark.asyncio
    async def test_list(self, client: AsyncClient, api, auth_headers, issue_receipt):
        await issue_receipt()
        await issue_receipt(amount="5000")

        response = await client.get(RECEIPTS, headers=auth_headers)

        data = api.assert_success(response)
        assert data["pagination"]["total"] == 2
        assert all(r["receipt_number"].startswith("IMP-") for r in data["data"])

    @pytest.mark.asyncio
    async def test_detail_has_tax_validation(self, client: AsyncClient, api, auth_headers, issue_receipt):
        receipt_id = await issue_receipt()

        response = await client.get(f"{RECEIPTS}/{receipt_id}", headers=auth_headers)

        receipt = api.assert_success(response)["data"]
        assert receipt["type"] == "donation"
        assert receipt["tax_deductible"] is True
        assert receipt["is_valid_for_tax_deduction"] is True
        assert receipt["tax_validation_errors"] == []

    @pytest.mark.asyncio
    async def test_download(self, client: AsyncClient, api, auth_headers, issue_receipt):
        receipt_id = await issue_receipt(pdf_url="https://files.eco-touch.app/r/1.pdf")

        response = await client.get(f"{RECEIPTS}/{receipt_id}/download", headers=auth_headers)

        assert api.assert_success(response)["data"]["download_url"] == "https://files.eco-touch.app/r/1.pdf"

    @pytest.mark.asyncio
    async def test_download_without_pdf(self, client: AsyncClient, api, auth_headers, issue_receipt):
        receipt_id = await issue_receipt()

        response = await client.get(f"{RECEIPTS}/{receipt_id}/download", headers=auth_headers)

        api.assert_error(response, 404, "RES_NOT_FOUND")

    @pytest.mark.asyncio
    async def test_unknown_receipt(self, client: AsyncClient, api, auth_headers):
        response = await client.get(f"{RECEIPTS}/missing", headers=auth_headers)

        api.assert_error(response, 404, "RES_NOT_FOUND")


class TestShare:
    @pytest.mark.asyncio
    async def test_creates_link_for_forwarded_host(self, client: AsyncClient, api, auth_headers):
        response = await client.post(
            "/api/v1/share",
            json={"type": "badge", "title": "I earned a Gold badge!", "meta": {"badge_id": "b-1"}},
            headers={**auth_headers, "X-Forwarded-Host": "eco-touch.app", "X-Forwarded-Proto": "https"},
        )

        link = api.assert_success(response)["data"]
        assert link["share_url"].startswith(f"https://eco-touch.app/s/{link['slug']}?to=")
        assert link["meta"] == {"badge_id": "b-1"}

    @pytest.mark.asyncio
    async def test_requires_title_or_text(self, client: AsyncClient, api, auth_headers):
        response = await client.post("/api/v1/share", json={"type": "badge"}, headers=auth_headers)

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
