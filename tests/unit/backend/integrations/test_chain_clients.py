"""
Unit tests for the SBT contract, account abstraction and paymaster clients.

The blockchain client is a MagicMock; bundler and paymaster calls run
over a MockTransport.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from modules.backend.core.exceptions import ExternalServiceError, ValidationError
from modules.backend.integrations.account_abstraction import (
    AccountAbstractionClient,
    hex_bytes,
    parse_quantity,
)
from modules.backend.integrations.gas_sponsorship import PaymasterClient, get_network_name
from modules.backend.integrations.sbt import NOT_INITIALIZED, SbtClient, token_id_for

WALLET = "0x52908400098527886E0F7030069857D2E4169EE7"
FACTORY = "0x9406Cc6185a346906296840746125a0E44976454"
PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture
def chain() -> MagicMock:
    blockchain = MagicMock()
    blockchain.account = MagicMock()
    blockchain.send_contract_transaction = AsyncMock(return_value="0xfeed")
    blockchain.call = AsyncMock()
    blockchain.get_code = AsyncMock(return_value=b"")
    blockchain.get_balance = AsyncMock(return_value=Web3.to_wei(1.5, "ether"))
    blockchain.estimate_gas = AsyncMock(return_value=29_000)
    blockchain.max_fee_per_gas = AsyncMock(return_value=Web3.to_wei(10, "gwei"))
    return blockchain


class TestTokenId:
    def test_stable_and_eight_bytes(self):
        token_id = token_id_for("mission-1")

        assert token_id == token_id_for("mission-1")
        assert token_id != token_id_for("mission-2")
        assert token_id < 2**64


class TestSbtClient:
    @pytest.mark.asyncio
    async def test_mint(self, chain):
        client = SbtClient(blockchain=chain, contract_address=FACTORY)

        result = await client.mint(WALLET.lower(), 42, {"name": "Gold badge"})

        assert result["success"] is True
        assert result["token_id"] == "42"
        assert result["transaction_hash"] == "0xfeed"
        assert result["token_uri"].startswith("ipfs://Qm")
        client.contract.functions.mint.assert_called_once_with(WALLET, 42, result["token_uri"])

    @pytest.mark.asyncio
    async def test_mint_without_contract(self, chain):
        client = SbtClient(blockchain=chain, contract_address="")

        result = await client.mint(WALLET, 7, {})

        assert result == {"success": False, "token_id": "7", "error": NOT_INITIALIZED}
        chain.send_contract_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mint_transaction_failure(self, chain):
        chain.send_contract_transaction.side_effect = ExternalServiceError(
            "Transaction reverted", service="polygon-rpc",
        )
        client = SbtClient(blockchain=chain, contract_address=FACTORY)

        result = await client.mint(WALLET, 7, {})

        assert result["success"] is False
        assert result["error"] == "Transaction reverted"

    @pytest.mark.asyncio
    async def test_reads_fall_back(self, chain):
        chain.call.side_effect = ExternalServiceError("rpc down", service="polygon-rpc")
        client = SbtClient(blockchain=chain, contract_address=FACTORY)

        assert await client.is_locked(1) is True
        assert await client.owner_of(1) is None
        assert await client.balance_of(WALLET) == 0
        assert await client.total_supply() == 0

    @pytest.mark.asyncio
    async def test_reads_without_contract(self, chain):
        client = SbtClient(blockchain=chain, contract_address="")

        assert await client.is_locked(1) is True
        assert await client.token_uri(1) is None
        chain.call.assert_not_awaited()


class TestQuantityParsing:
    def test_parse_quantity(self):
        assert parse_quantity("0x10") == 16
        assert parse_quantity("25") == 25
        assert parse_quantity(3) == 3

    def test_invalid_quantity(self):
        with pytest.raises(ValidationError):
            parse_quantity("ten")

    def test_hex_bytes(self):
        assert hex_bytes("0x") == b""
        assert hex_bytes("0x0a0b") == b"\x0a\x0b"


class TestAccountAbstractionClient:
    def _client(self, chain, transport=None, **kwargs) -> AccountAbstractionClient:
        kwargs.setdefault("account_factory_address", FACTORY)
        kwargs.setdefault("paymaster_address", "")
        kwargs.setdefault("bundler_url", "https://bundler.test")
        return AccountAbstractionClient(blockchain=chain, transport=transport, **kwargs)

    def test_account_address_is_deterministic(self, chain):
        client = self._client(chain)

        first = client.get_account_address(WALLET)

        assert first == client.get_account_address(WALLET)
        assert first != client.get_account_address(WALLET, salt="1")
        assert Web3.is_checksum_address(first)

    def test_account_address_requires_factory(self, chain):
        with pytest.raises(ExternalServiceError):
            self._client(chain, account_factory_address="").get_account_address(WALLET)

    def test_create_account(self, chain):
        result = self._client(chain).create_account(WALLET)

        assert result["init_code"] == "0x"
        assert Web3.is_checksum_address(result["account_address"])

    def test_user_operation_defaults(self, chain):
        op = self._client(chain).create_user_operation(WALLET, WALLET, value="0x1")

        assert op["nonce"] == "0x0"
        assert op["callGasLimit"] == hex(100_000)
        assert op["maxFeePerGas"] == hex(Web3.to_wei(50, "gwei"))
        assert op["paymasterAndData"] == "0x"
        assert op["signature"] == "0x"

    def test_paymaster_data(self, chain):
        client = self._client(chain, paymaster_address="0xabc")

        assert client.get_paymaster_data() == "0xabc" + "00" * 64

    def test_signature_recovers_signer(self, chain):
        client = self._client(chain)
        op = client.create_user_operation(WALLET, WALLET)

        signature = client.sign_user_operation(op, PRIVATE_KEY)

        message = encode_defunct(primitive=client.get_user_op_hash(op))
        signer = Account.from_key(PRIVATE_KEY).address
        assert Account.recover_message(message, signature=signature) == signer

    def test_hash_changes_with_nonce(self, chain):
        client = self._client(chain)
        op = client.create_user_operation(WALLET, WALLET)

        assert client.get_user_op_hash(op) != client.get_user_op_hash({**op, "nonce": "0x1"})

    @pytest.mark.asyncio
    async def test_submit(self, chain, transport_for):
        transport = transport_for({("POST", "/rpc"): {"jsonrpc": "2.0", "id": 1, "result": "0xop"}})
        client = self._client(chain, transport=transport)
        op = client.create_user_operation(WALLET, WALLET)

        result = await client.submit_user_operation(op)

        assert result == {"user_op_hash": "0xop"}
        body = transport.last_json()
        assert body["method"] == "eth_sendUserOperation"
        assert body["params"][1] == "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"

    @pytest.mark.asyncio
    async def test_submit_requires_bundler(self, chain):
        with pytest.raises(ExternalServiceError) as exc_info:
            await self._client(chain, bundler_url="").submit_user_operation({})

        assert exc_info.value.message == "Bundler not configured"

    @pytest.mark.asyncio
    async def test_balance_and_deployment(self, chain):
        client = self._client(chain)

        assert await client.get_account_balance(WALLET) == "1.5"
        assert await client.is_account_deployed(WALLET) is False


class TestPaymasterClient:
    @pytest.mark.asyncio
    async def test_pimlico(self, chain, transport_for):
        transport = transport_for({
            ("POST", "/v2/137/rpc"): {
                "jsonrpc": "2.0",
                "id": 1,
                "result": {"paymasterAndData": "0xpm", "callGasLimit": "0x1"},
            },
        })
        client = PaymasterClient(service="pimlico", blockchain=chain, transport=transport)

        with patch(
            "modules.backend.integrations.gas_sponsorship.get_settings",
            return_value=MagicMock(pimlico_api_key="pk"),
        ):
            result = await client.sponsor_gas({"sender": WALLET}, "0xentry", 137)

        assert result["paymasterAndData"] == "0xpm"
        assert result["callGasLimit"] == "0x1"
        assert transport.requests[0].url.params["apikey"] == "pk"
        assert transport.last_json()["method"] == "pm_sponsorUserOperation"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [None, {}, {"paymasterAndData": None}])
    async def test_pimlico_reply_without_paymaster_data(self, chain, transport_for, result):
        transport = transport_for({
            ("POST", "/v2/137/rpc"): {"jsonrpc": "2.0", "id": 1, "result": result},
        })
        client = PaymasterClient(service="pimlico", blockchain=chain, transport=transport)

        with patch(
            "modules.backend.integrations.gas_sponsorship.get_settings",
            return_value=MagicMock(pimlico_api_key="pk"),
        ):
            with pytest.raises(ExternalServiceError, match="returned no paymasterAndData") as exc_info:
                await client.sponsor_gas({"sender": WALLET}, "0xentry", 137)

        assert exc_info.value.service == "pimlico"

    @pytest.mark.asyncio
    async def test_cloudflare_reply_without_paymaster_data(self, chain):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        client = PaymasterClient(service="cloudflare", blockchain=chain, transport=transport)

        with patch(
            "modules.backend.integrations.gas_sponsorship.get_settings",
            return_value=MagicMock(cloudflare_account_id="acc", cloudflare_api_token="tok"),
        ):
            with pytest.raises(ExternalServiceError) as exc_info:
                await client.sponsor_gas({"sender": WALLET}, "0xentry", 137)

        assert exc_info.value.service == "cloudflare"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, chain, transport_for):
        client = PaymasterClient(service="pimlico", blockchain=chain, transport=transport_for({}))

        with patch(
            "modules.backend.integrations.gas_sponsorship.get_settings",
            return_value=MagicMock(pimlico_api_key=""),
        ):
            with pytest.raises(ExternalServiceError) as exc_info:
                await client.sponsor_gas({}, "0xentry", 137)

        assert exc_info.value.service == "pimlico"

    @pytest.mark.asyncio
    async def test_unsupported_service(self, chain, transport_for):
        client = PaymasterClient(service="gelato", blockchain=chain, transport=transport_for({}))

        with pytest.raises(ValidationError):
            await client.sponsor_gas({}, "0xentry", 137)

    @pytest.mark.asyncio
    async def test_estimate_gas_costs(self, chain, transport_for):
        client = PaymasterClient(service="pimlico", blockchain=chain, transport=transport_for({}))

        costs = await client.estimate_gas_costs({"sender": WALLET.lower(), "callData": "0x"})

        assert costs["callGasLimit"] == hex(29_000)
        # (29_000 + 50_000 + 21_000) gas at 10 gwei
        assert costs["totalGasCost"] == "0.001"

    def test_network_names(self):
        assert get_network_name(137) == "polygon-mainnet"
        assert get_network_name(999) == "mainnet"
