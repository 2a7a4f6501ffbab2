"""
ERC-4337 Account Abstraction.

Counterfactual smart-account addresses, UserOperation construction,
hashing and signing, and submission to a bundler.
"""

from typing import Any

import httpx
from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_bytes
from web3 import Web3

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import ExternalServiceError, ValidationError
from modules.backend.core.logging import get_logger
from modules.backend.integrations.blockchain import BlockchainClient, get_blockchain_client
from modules.backend.integrations.http import IntegrationClient

logger = get_logger(__name__)

CALL_GAS_LIMIT = 100_000
VERIFICATION_GAS_LIMIT = 50_000
PRE_VERIFICATION_GAS = 21_000
MAX_FEE_PER_GAS = Web3.to_wei(50, "gwei")
MAX_PRIORITY_FEE_PER_GAS = Web3.to_wei(2, "gwei")

USER_OP_HASH_TYPES = [
    "address", "uint256", "bytes32", "bytes32", "uint256",
    "uint256", "uint256", "uint256", "uint256", "bytes32",
]


def parse_quantity(value: str | int) -> int:
    """Parse a decimal or 0x-prefixed quantity."""
    if isinstance(value, int):
        return value
    text = value.strip()
    try:
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError as e:
        raise ValidationError(f"Invalid numeric value: {value}") from e


def hex_bytes(value: str) -> bytes:
    try:
        return to_bytes(hexstr=value or "0x")
    except ValueError as e:
        raise ValidationError(f"Invalid hex data: {value}") from e


class AccountAbstractionClient:
    """Smart-account helper bound to one entry point, factory and bundler."""

    service = "bundler"

    def __init__(
        self,
        entry_point_address: str | None = None,
        account_factory_address: str | None = None,
        paymaster_address: str | None = None,
        bundler_url: str | None = None,
        blockchain: BlockchainClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = get_app_config().blockchain.account_abstraction
        self.entry_point_address = entry_point_address or config.entry_point_address
        self.account_factory_address = (
            config.account_factory_address
            if account_factory_address is None
            else account_factory_address
        )
        self.paymaster_address = (
            config.paymaster_address if paymaster_address is None else paymaster_address
        )
        self.bundler_url = config.bundler_url if bundler_url is None else bundler_url
        self._blockchain = blockchain
        self.http = IntegrationClient.from_config(
            self.service,
            get_app_config().integrations.bundler,
            transport=transport,
        )

    @property
    def blockchain(self) -> BlockchainClient:
        if self._blockchain is None:
            self._blockchain = get_blockchain_client()
        return self._blockchain

    def get_init_code(self, owner: str, salt: str = "0") -> str:
        # Factory calldata is not encoded yet; accounts are deployed out of band.
        return "0x"

    def get_account_address(self, owner: str, salt: str = "0") -> str:
        """Counterfactual CREATE2 address of the owner's smart account."""
        if not self.account_factory_address:
            raise ExternalServiceError("Account factory not configured", service=self.service)

        init_code = self.get_init_code(owner, salt)
        code_hash = Web3.keccak(hex_bytes(init_code))
        salt_bytes = parse_quantity(salt).to_bytes(32, "big")
        factory = hex_bytes(Web3.to_checksum_address(self.account_factory_address))

        digest = Web3.keccak(b"\xff" + factory + salt_bytes + code_hash)
        return Web3.to_checksum_address(digest[12:])

    def create_account(self, owner: str, salt: str = "0") -> dict[str, str]:
        logger.info("Creating smart account", extra={"owner": owner, "salt": salt})
        init_code = self.get_init_code(owner, salt)
        account_address = self.get_account_address(owner, salt)
        logger.info("Smart account address derived", extra={"account_address": account_address})
        return {"account_address": account_address, "init_code": init_code}

    def encode_call_data(self, to: str, value: str | int, data: str) -> str:
        encoded = encode(
            ["address", "uint256", "bytes"],
            [Web3.to_checksum_address(to), parse_quantity(value), hex_bytes(data)],
        )
        return Web3.to_hex(encoded)

    def get_paymaster_data(self) -> str:
        if not self.paymaster_address:
            return "0x"
        return self.paymaster_address + "00" * 64

    def create_user_operation(
        self,
        sender: str,
        to: str,
        value: str | int = "0",
        data: str = "0x",
        nonce: str | None = None,
    ) -> dict[str, str]:
        return {
            "sender": sender,
            "nonce": nonce or "0x0",
            "initCode": "0x",
            "callData": self.encode_call_data(to, value, data),
            "callGasLimit": hex(CALL_GAS_LIMIT),
            "verificationGasLimit": hex(VERIFICATION_GAS_LIMIT),
            "preVerificationGas": hex(PRE_VERIFICATION_GAS),
            "maxFeePerGas": hex(MAX_FEE_PER_GAS),
            "maxPriorityFeePerGas": hex(MAX_PRIORITY_FEE_PER_GAS),
            "paymasterAndData": self.get_paymaster_data(),
            "signature": "0x",
        }

    def get_user_op_hash(self, user_op: dict[str, Any]) -> bytes:
        encoded = encode(
            USER_OP_HASH_TYPES,
            [
                Web3.to_checksum_address(user_op["sender"]),
                parse_quantity(user_op["nonce"]),
                Web3.keccak(hex_bytes(user_op["initCode"])),
                Web3.keccak(hex_bytes(user_op["callData"])),
                parse_quantity(user_op["callGasLimit"]),
                parse_quantity(user_op["verificationGasLimit"]),
                parse_quantity(user_op["preVerificationGas"]),
                parse_quantity(user_op["maxFeePerGas"]),
                parse_quantity(user_op["maxPriorityFeePerGas"]),
                Web3.keccak(hex_bytes(user_op["paymasterAndData"])),
            ],
        )
        return Web3.keccak(encoded)

    def sign_user_operation(self, user_op: dict[str, Any], private_key: str) -> str:
        """EIP-191 personal signature over the UserOperation hash."""
        message = encode_defunct(primitive=self.get_user_op_hash(user_op))
        signed = Account.sign_message(message, private_key=private_key)
        return Web3.to_hex(signed.signature)

    async def submit_user_operation(self, user_op: dict[str, Any]) -> dict[str, str]:
        if not self.bundler_url:
            logger.warning("UserOperation submitted without a bundler")
            raise ExternalServiceError("Bundler not configured", service=self.service)

        logger.info("Submitting UserOperation", extra={"sender": user_op.get("sender")})
        result = await self.http.json_rpc(
            f"{self.bundler_url.rstrip('/')}/rpc",
            "eth_sendUserOperation",
            [user_op, self.entry_point_address],
        )
        return {"user_op_hash": result}

    def estimate_user_operation_gas(self) -> dict[str, str]:
        return {
            "callGasLimit": hex(CALL_GAS_LIMIT),
            "verificationGasLimit": hex(VERIFICATION_GAS_LIMIT),
            "preVerificationGas": hex(PRE_VERIFICATION_GAS),
        }

    async def get_account_balance(self, address: str) -> str:
        balance = await self.blockchain.get_balance(address)
        return str(Web3.from_wei(balance, "ether"))

    async def is_account_deployed(self, address: str) -> bool:
        try:
            code = await self.blockchain.get_code(address)
        except ExternalServiceError:
            return False
        return len(code) > 0


_client: AccountAbstractionClient | None = None


def get_account_abstraction_client() -> AccountAbstractionClient:
    global _client
    if _client is None:
        _client = AccountAbstractionClient()
    return _client
