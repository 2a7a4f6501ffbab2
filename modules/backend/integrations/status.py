"""
Integration Status.

Reachability checks for the chain RPC and the impact APIs, shared by the
detailed health endpoint and the scheduled integration health task.
"""

import asyncio
import time
from typing import Any

from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.integrations.blockchain import get_blockchain_client
from modules.backend.integrations.carbon_offset import get_carbon_offset_client
from modules.backend.integrations.donation import get_donation_client
from modules.backend.integrations.petition import get_petition_client


async def check_blockchain() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        block_number = await get_blockchain_client().block_number()
    except ExternalServiceError as e:
        return {"status": "unhealthy", "error": e.message}
    return {
        "status": "healthy",
        "block_number": block_number,
        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
    }


async def check_external_apis() -> dict[str, Any]:
    """
    validate_api_key on each impact API; `not_configured` when its key is empty.

    Returns:
        {"status": healthy | degraded, "services": {name: status}}
    """
    clients = {
        "cloverly": get_carbon_offset_client(),
        "one_click_impact": get_donation_client(),
        "nation_builder": get_petition_client(),
    }
    configured = {name: client for name, client in clients.items() if client.is_configured}
    results = await asyncio.gather(
        *(client.validate_api_key() for client in configured.values()),
    )

    services: dict[str, str] = {name: "not_configured" for name in clients}
    for name, valid in zip(configured, results):
        services[name] = "healthy" if valid else "unhealthy"

    degraded = any(status == "unhealthy" for status in services.values())
    return {"status": "degraded" if degraded else "healthy", "services": services}
