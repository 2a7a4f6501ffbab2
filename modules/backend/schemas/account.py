"""
Account Abstraction Schemas.

UserOperation fields keep the ERC-4337 camelCase names on the wire.
"""

from typing import Annotated

from eth_utils import is_address, to_checksum_address
from pydantic import AfterValidator, BaseModel, Field

from modules.backend.core.exceptions import ValidationError


def _checksum(value: str) -> str:
    if not is_address(value):
        raise ValueError("Invalid address")
    return to_checksum_address(value)


ChecksumAddress = Annotated[str, AfterValidator(_checksum)]


def require_address(value: str) -> str:
    """Checksum an address taken from a path parameter."""
    if not is_address(value):
        raise ValidationError("Invalid address", details={"address": value})
    return to_checksum_address(value)


class UserOperation(BaseModel):
    sender: ChecksumAddress
    nonce: str = "0x0"
    initCode: str = "0x"
    callData: str = "0x"
    callGasLimit: str
    verificationGasLimit: str
    preVerificationGas: str
    maxFeePerGas: str
    maxPriorityFeePerGas: str
    paymasterAndData: str = "0x"
    signature: str = "0x"


class AccountCreateRequest(BaseModel):
    owner: ChecksumAddress = Field(..., description="EOA that will own the smart account")
    salt: str = Field(default="0", description="CREATE2 salt, decimal or 0x-hex")


class AccountCreateResponse(BaseModel):
    account_address: str
    init_code: str


class UserOperationCreateRequest(BaseModel):
    sender: ChecksumAddress
    to: ChecksumAddress
    value: str = Field(default="0", description="Wei, decimal or 0x-hex")
    data: str = "0x"
    nonce: str | None = None


class UserOperationSubmitRequest(BaseModel):
    user_operation: UserOperation


class UserOperationSubmitResponse(BaseModel):
    user_op_hash: str


class AccountInfoResponse(BaseModel):
    address: str
    balance: str
    deployed: bool
