"""
SBT Endpoints.

Direct access to the soulbound-token contract.
"""

from fastapi import APIRouter, Depends

from modules.backend.core.dependencies import limit_by_ip
from modules.backend.core.utils import utc_now
from modules.backend.integrations.sbt import get_sbt_client, random_token_id, token_id_for
from modules.backend.schemas.account import require_address
from modules.backend.schemas.badge import (
    BalanceResponse,
    SbtMintRequest,
    SbtMintResult,
    SbtStatsResponse,
    TokenInfoResponse,
)
from modules.backend.schemas.base import ApiResponse
from modules.backend.services.badge import generate_sbt_metadata

router = APIRouter()


@router.post(
    "/mint",
    response_model=ApiResponse[SbtMintResult],
    summary="Mint an SBT",
    description="Mint a badge token to any wallet. A failed mint is reported in the result.",
    dependencies=[Depends(limit_by_ip("blockchain"))],
)
async def mint_sbt(data: SbtMintRequest) -> ApiResponse[SbtMintResult]:
    token_id = token_id_for(data.mission_id) if data.mission_id else random_token_id()
    metadata = generate_sbt_metadata(
        data.mission_type, data.impact_score, data.mission_title, utc_now(),
    )
    result = await get_sbt_client().mint(data.recipient, token_id, metadata)
    return ApiResponse(data=SbtMintResult(**result))


@router.get(
    "/stats",
    response_model=ApiResponse[SbtStatsResponse],
    summary="Contract stats",
)
async def sbt_stats() -> ApiResponse[SbtStatsResponse]:
    return ApiResponse(data=SbtStatsResponse(total_supply=await get_sbt_client().total_supply()))


@router.get(
    "/balance/{address}",
    response_model=ApiResponse[BalanceResponse],
    summary="Token balance of a wallet",
)
async def sbt_balance(address: str) -> ApiResponse[BalanceResponse]:
    address = require_address(address)
    balance = await get_sbt_client().balance_of(address)
    return ApiResponse(data=BalanceResponse(address=address, balance=balance))


@router.get(
    "/{token_id}",
    response_model=ApiResponse[TokenInfoResponse],
    summary="Token info",
)
async def token_info(token_id: int) -> ApiResponse[TokenInfoResponse]:
    sbt = get_sbt_client()
    return ApiResponse(
        data=TokenInfoResponse(
            token_id=str(token_id),
            owner=await sbt.owner_of(token_id),
            token_uri=await sbt.token_uri(token_id),
            locked=await sbt.is_locked(token_id),
        )
    )
