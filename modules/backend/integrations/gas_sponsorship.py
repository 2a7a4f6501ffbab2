"""
Paymaster Client.

Requests ERC-4337 gas sponsorship from the configured paymaster service
(pimlico, alchemy, cloudflare or infura) and estimates unsponsored costs.
Daily eligibility lives in the gas sponsorship service, which owns the
persisted records.
"""

from typing import Any

import httpx
from web3 import Web3

from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.exceptions import ExternalServiceError, ValidationError
from modules.backend.core.logging import get_logger
from modules.backend.integrations.blockchain import BlockchainClient, get_blockchain_client
from modules.backend.integrations.http import IntegrationClient

logger = get_logger(__name__)

SUPPORTED_SERVICES = ("pimlico", "alchemy", "cloudflare", "infura")

NETWORK_NAMES: dict[int, str] = {
    1: "mainnet",
    137: "polygon-mainnet",
    80001: "polygon-mumbai",
    42161: "arbitrum-mainnet",
    10: "optimism-mainnet",
}


def get_network_name(chain_id: int) -> str:
    return NETWORK_NAMES.get(chain_id, "mainnet")


def paymaster_data(reply: Any, service: str) -> str:
    """Pull paymasterAndData out of a provider reply or fail as an upstream error."""
    value = reply.get("paymasterAndData") if isinstance(reply, dict) else None
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ExternalServiceError(f"{service} returned no paymasterAndData", service=service)
    return value


class PaymasterClient:
    """Dispatches sponsorship requests to one paymaster provider."""

    def __init__(
        self,
        service: str | None = None,
        blockchain: BlockchainClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = get_app_config().integrations.gas_sponsorship
        self.service = service or self.config.service
        self._blockchain = blockchain
        self.http = IntegrationClient(
            "paymaster",
            timeout=self.config.timeout,
            circuit_breaker=self.config.circuit_breaker,
            retry=self.config.retry,
            transport=transport,
        )

    @property
    def blockchain(self) -> BlockchainClient:
        if self._blockchain is None:
            self._blockchain = get_blockchain_client()
        return self._blockchain

    async def sponsor_gas(
        self,
        user_op: dict[str, Any],
        entry_point: str,
        chain_id: int,
    ) -> dict[str, Any]:
        """
        Ask the paymaster to sponsor a UserOperation.

        Returns:
            paymasterAndData, plus gas limits when the provider supplies them

        Raises:
            ValidationError: Unsupported service
            ExternalServiceError: Missing credentials or provider error
        """
        logger.info(
            "Requesting gas sponsorship",
            extra={"service": self.service, "chain_id": chain_id},
        )
        if self.service == "pimlico":
            return await self._sponsor_with_pimlico(user_op, entry_point, chain_id)
        if self.service == "alchemy":
            return await self._sponsor_with_alchemy(user_op, entry_point, chain_id)
        if self.service == "cloudflare":
            return await self._sponsor_with_cloudflare(user_op, entry_point)
        if self.service == "infura":
            return await self._sponsor_with_infura(user_op)
        raise ValidationError(f"Unsupported gas sponsorship service: {self.service}")

    async def _sponsor_with_pimlico(
        self, user_op: dict[str, Any], entry_point: str, chain_id: int,
    ) -> dict[str, Any]:
        api_key = get_settings().pimlico_api_key
        if not api_key:
            raise ExternalServiceError("PIMLICO_API_KEY not configured", service="pimlico")

        url = f"{self.config.pimlico_url.rstrip('/')}/{chain_id}/rpc?apikey={api_key}"
        result = await self.http.json_rpc(url, "pm_sponsorUserOperation", [user_op, entry_point])
        return {
            "paymasterAndData": paymaster_data(result, "pimlico"),
            "preVerificationGas": result.get("preVerificationGas"),
            "verificationGasLimit": result.get("verificationGasLimit"),
            "callGasLimit": result.get("callGasLimit"),
        }

    async def _sponsor_with_alchemy(
        self, user_op: dict[str, Any], entry_point: str, chain_id: int,
    ) -> dict[str, Any]:
        settings = get_settings()
        if not settings.alchemy_api_key:
            raise ExternalServiceError("ALCHEMY_API_KEY not configured", service="alchemy")

        url = (
            self.config.alchemy_url.format(network=get_network_name(chain_id))
            + f"/{settings.alchemy_api_key}"
        )
        result = await self.http.json_rpc(
            url,
            "alchemy_requestPaymasterAndData",
            [{
                "policyId": settings.alchemy_policy_id,
                "entryPoint": entry_point,
                "userOp": user_op,
            }],
        )
        return {"paymasterAndData": paymaster_data(result, "alchemy")}

    async def _sponsor_with_cloudflare(
        self, user_op: dict[str, Any], entry_point: str,
    ) -> dict[str, Any]:
        settings = get_settings()
        if not settings.cloudflare_account_id or not settings.cloudflare_api_token:
            raise ExternalServiceError(
                "Cloudflare credentials not configured", service="cloudflare",
            )

        url = self.config.cloudflare_url.format(account_id=settings.cloudflare_account_id)
        data = await self.http.request_json(
            "POST",
            url,
            json={"userOp": user_op, "entryPoint": entry_point},
            headers={"Authorization": f"Bearer {settings.cloudflare_api_token}"},
        )
        return {"paymasterAndData": paymaster_data(data, "cloudflare")}

    async def _sponsor_with_infura(self, user_op: dict[str, Any]) -> dict[str, Any]:
        project_id = get_settings().infura_project_id
        if not project_id:
            raise ExternalServiceError("INFURA_PROJECT_ID not configured", service="infura")

        url = f"{self.config.infura_url.rstrip('/')}/{project_id}"
        await self.http.json_rpc(
            url, "eth_sendRawTransaction", [{"userOp": user_op, "sponsored": True}],
        )
        # Infura sponsors server-side; no paymaster data goes on the op.
        return {"paymasterAndData": "0x"}

    async def estimate_gas_costs(self, user_op: dict[str, Any]) -> dict[str, str]:
        """Unsponsored cost of a UserOperation at the current max fee."""
        try:
            call_gas = await self.blockchain.estimate_gas({
                "to": Web3.to_checksum_address(user_op["sender"]),
                "data": user_op.get("callData") or "0x",
            })
        except ExternalServiceError as e:
            raise ExternalServiceError(
                "Failed to estimate gas costs", service="blockchain",
            ) from e

        verification_gas = 50_000
        pre_verification_gas = 21_000
        total_gas = call_gas + verification_gas + pre_verification_gas
        gas_price = await self.blockchain.max_fee_per_gas()

        return {
            "callGasLimit": hex(call_gas),
            "verificationGasLimit": hex(verification_gas),
            "preVerificationGas": hex(pre_verification_gas),
            "totalGasCost": str(Web3.from_wei(total_gas * gas_price, "ether")),
        }


_client: PaymasterClient | None = None


def get_paymaster_client() -> PaymasterClient:
    global _client
    if _client is None:
        _client = PaymasterClient()
    return _client
