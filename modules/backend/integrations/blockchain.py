"""
Blockchain RPC Client.

Shared AsyncWeb3 connection to the configured EVM chain (Polygon by
default). Reads go through a dedicated circuit breaker, the "blockchain"
semaphore and the configured request timeout. Transactions signed by the
backend key are serialized through a nonce lock.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import aiobreaker
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from modules.backend.core.concurrency import get_semaphore
from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.core.logging import get_logger
from modules.backend.core.resilience import create_circuit_breaker

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_FEE_PER_GAS = Web3.to_wei(50, "gwei")


class BlockchainClient:
    """AsyncWeb3 wrapper with breaker, semaphore and timeout on every RPC call."""

    def __init__(
        self,
        rpc_url: str | None = None,
        chain_id: int | None = None,
        signer_key: str | None = None,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        config = get_app_config().blockchain
        self.rpc_url = rpc_url or config.rpc_url
        self.chain_id = chain_id or config.chain_id
        self.request_timeout = config.request_timeout
        self.receipt_timeout = config.receipt_timeout
        self.w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(self.rpc_url, request_kwargs={"timeout": self.request_timeout}),
        )
        self.breaker = create_circuit_breaker(
            "blockchain",
            fail_max=config.circuit_breaker.fail_max,
            timeout_duration=config.circuit_breaker.timeout_duration,
        )

        key = get_settings().sbt_signer_private_key if signer_key is None else signer_key
        self.account = Account.from_key(key) if key else None
        self._nonce_lock = asyncio.Lock()

    @property
    def signer_address(self) -> str | None:
        return self.account.address if self.account else None

    async def call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run one RPC coroutine through the resilience stack.

        Raises:
            ExternalServiceError: When the breaker is open or the RPC fails
        """
        try:
            return await self.breaker.call_async(self._guarded, fn)
        except aiobreaker.CircuitBreakerError as e:
            raise ExternalServiceError(
                "Blockchain RPC is temporarily unavailable", service="blockchain",
            ) from e
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.warning(
                "Blockchain RPC call failed",
                extra={"operation": operation, "error": str(e) or type(e).__name__},
            )
            raise ExternalServiceError(
                f"Blockchain {operation} failed", service="blockchain",
            ) from e

    async def _guarded(self, fn: Callable[[], Awaitable[T]]) -> T:
        async with get_semaphore("blockchain"):
            async with asyncio.timeout(self.request_timeout):
                return await fn()

    async def block_number(self) -> int:
        return await self.call("block_number", lambda: self.w3.eth.block_number)

    async def get_balance(self, address: str) -> int:
        checksum = Web3.to_checksum_address(address)
        return await self.call("get_balance", lambda: self.w3.eth.get_balance(checksum))

    async def get_code(self, address: str) -> bytes:
        checksum = Web3.to_checksum_address(address)
        return await self.call("get_code", lambda: self.w3.eth.get_code(checksum))

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return await self.call("estimate_gas", lambda: self.w3.eth.estimate_gas(tx))

    async def max_fee_per_gas(self) -> int:
        """EIP-1559 max fee (2 × base fee + tip), falling back to 50 gwei."""
        try:
            block = await self.call("get_block", lambda: self.w3.eth.get_block("latest"))
            priority = await self.call(
                "max_priority_fee", lambda: self.w3.eth.max_priority_fee,
            )
        except ExternalServiceError:
            return DEFAULT_MAX_FEE_PER_GAS
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            return DEFAULT_MAX_FEE_PER_GAS
        return base_fee * 2 + priority

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def send_contract_transaction(self, function: Any) -> str:
        """
        Build, sign and send a contract call from the backend signer.

        Returns the transaction hash once the receipt is mined with status 1.

        Raises:
            ExternalServiceError: No signer, RPC failure, or reverted transaction
        """
        if self.account is None:
            raise ExternalServiceError("Blockchain signer not configured", service="blockchain")

        async with self._nonce_lock:
            nonce = await self.call(
                "get_transaction_count",
                lambda: self.w3.eth.get_transaction_count(self.account.address, "pending"),
            )
            tx = await self.call(
                "build_transaction",
                lambda: function.build_transaction({
                    "from": self.account.address,
                    "nonce": nonce,
                    "chainId": self.chain_id,
                }),
            )
            signed = self.w3.eth.account.sign_transaction(tx, self.account.key)
            tx_hash = await self.call(
                "send_raw_transaction",
                lambda: self.w3.eth.send_raw_transaction(signed.raw_transaction),
            )

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(
            "Transaction sent",
            extra={"tx_hash": tx_hash_hex, "nonce": nonce, "chain_id": self.chain_id},
        )

        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout,
            )
        except Exception as e:
            raise ExternalServiceError(
                "Transaction receipt not available", service="blockchain",
            ) from e

        if receipt["status"] != 1:
            logger.error("Transaction reverted", extra={"tx_hash": tx_hash_hex})
            raise ExternalServiceError("Transaction reverted", service="blockchain")

        logger.info(
            "Transaction confirmed",
            extra={"tx_hash": tx_hash_hex, "block_number": receipt["blockNumber"]},
        )
        return tx_hash_hex


_client: BlockchainClient | None = None


def get_blockchain_client() -> BlockchainClient:
    global _client
    if _client is None:
        _client = BlockchainClient()
    return _client
