"""
Receipts API Endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends

from modules.backend.core.dependencies import CurrentUser, DbSession, RequestId
from modules.backend.core.pagination import (
    PaginationParams,
    create_paginated_response,
    get_pagination_params,
)
from modules.backend.models.receipt import Receipt
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.receipt import (
    ReceiptDownloadResponse,
    ReceiptListResponse,
    ReceiptResponse,
)
from modules.backend.services.receipt import ReceiptService

router = APIRouter()


def _to_response(receipt: Receipt) -> ReceiptResponse:
    response = ReceiptResponse.model_validate(receipt)
    response.tax_validation_errors = receipt.validate_for_tax_deduction()
    return response


@router.get(
    "",
    summary="List my receipts (paginated)",
)
async def list_receipts(
    db: DbSession,
    user: CurrentUser,
    request_id: RequestId,
    pagination: PaginationParams = Depends(get_pagination_params),
) -> dict[str, Any]:
    receipts, total = await ReceiptService(db).list_receipts(
        user, limit=pagination.limit, offset=pagination.offset,
    )
    return create_paginated_response(
        items=receipts,
        item_schema=ReceiptListResponse,
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
        request_id=request_id,
    )


@router.get(
    "/{receipt_id}",
    response_model=ApiResponse[ReceiptResponse],
    summary="Get a receipt",
    description="Receipt with its tax-deduction validity and any validation errors.",
)
async def get_receipt(
    receipt_id: str,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[ReceiptResponse]:
    receipt = await ReceiptService(db).get_receipt(user, receipt_id)
    return ApiResponse(data=_to_response(receipt))


@router.get(
    "/{receipt_id}/download",
    response_model=ApiResponse[ReceiptDownloadResponse],
    summary="Receipt PDF link",
)
async def download_receipt(
    receipt_id: str,
    db: DbSession,
    user: CurrentUser,
) -> ApiResponse[ReceiptDownloadResponse]:
    url = await ReceiptService(db).get_download_url(user, receipt_id)
    return ApiResponse(data=ReceiptDownloadResponse(download_url=url))
