"""
Account Abstraction Endpoints.

Smart-account addresses and ERC-4337 UserOperations.
"""

from fastapi import APIRouter, Depends

from modules.backend.core.dependencies import limit_by_ip
from modules.backend.integrations.account_abstraction import get_account_abstraction_client
from modules.backend.schemas.account import (
    AccountCreateRequest,
    AccountCreateResponse,
    AccountInfoResponse,
    UserOperation,
    UserOperationCreateRequest,
    UserOperationSubmitRequest,
    UserOperationSubmitResponse,
    require_address,
)
from modules.backend.schemas.base import ApiResponse

router = APIRouter()


@router.post(
    "/create",
    response_model=ApiResponse[AccountCreateResponse],
    summary="Derive a smart account",
    description="Counterfactual CREATE2 address of the owner's smart account.",
)
async def create_account(data: AccountCreateRequest) -> ApiResponse[AccountCreateResponse]:
    account = get_account_abstraction_client().create_account(data.owner, data.salt)
    return ApiResponse(data=AccountCreateResponse(**account))


@router.post(
    "/userop/create",
    response_model=ApiResponse[UserOperation],
    summary="Build a UserOperation",
)
async def create_user_operation(
    data: UserOperationCreateRequest,
) -> ApiResponse[UserOperation]:
    user_op = get_account_abstraction_client().create_user_operation(
        data.sender, data.to, data.value, data.data, data.nonce,
    )
    return ApiResponse(data=UserOperation(**user_op))


@router.get(
    "/userop/estimate",
    response_model=ApiResponse[dict[str, str]],
    summary="UserOperation gas limits",
)
async def estimate_user_operation() -> ApiResponse[dict[str, str]]:
    return ApiResponse(data=get_account_abstraction_client().estimate_user_operation_gas())


@router.post(
    "/userop/submit",
    response_model=ApiResponse[UserOperationSubmitResponse],
    summary="Submit a UserOperation to the bundler",
    dependencies=[Depends(limit_by_ip("blockchain"))],
)
async def submit_user_operation(
    data: UserOperationSubmitRequest,
) -> ApiResponse[UserOperationSubmitResponse]:
    result = await get_account_abstraction_client().submit_user_operation(
        data.user_operation.model_dump(),
    )
    return ApiResponse(data=UserOperationSubmitResponse(**result))


@router.get(
    "/{address}",
    response_model=ApiResponse[AccountInfoResponse],
    summary="Smart account info",
)
async def account_info(address: str) -> ApiResponse[AccountInfoResponse]:
    checksummed = require_address(address)
    client = get_account_abstraction_client()
    return ApiResponse(
        data=AccountInfoResponse(
            address=checksummed,
            balance=await client.get_account_balance(checksummed),
            deployed=await client.is_account_deployed(checksummed),
        )
    )
