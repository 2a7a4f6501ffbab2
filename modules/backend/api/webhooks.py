"""
Webhook Endpoints.

Inbound notifications from the impact APIs and the bundler. Payloads are
handed to the process_webhook task and acknowledged immediately.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from modules.backend.core.dependencies import limit_by_ip
from modules.backend.core.exceptions import NotFoundError
from modules.backend.core.logging import get_logger
from modules.backend.schemas.base import ApiResponse
from modules.backend.schemas.webhook import WebhookAck
from modules.backend.services.queue import get_queue_service
from modules.backend.services.webhook import WEBHOOK_SERVICES

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/{service}",
    response_model=ApiResponse[WebhookAck],
    summary="Receive a webhook",
    dependencies=[Depends(limit_by_ip("webhook", scope_param="service"))],
)
async def receive_webhook(
    service: str,
    payload: dict[str, Any] = Body(default_factory=dict),
) -> ApiResponse[WebhookAck]:
    if service not in WEBHOOK_SERVICES:
        raise NotFoundError("Unknown webhook service")

    logger.info("Webhook received", extra={"service": service})
    await get_queue_service().add_job(
        "process_webhook", {"service": service, "payload": payload},
    )
    return ApiResponse(data=WebhookAck(service=service))
