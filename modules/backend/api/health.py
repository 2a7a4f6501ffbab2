"""
Health Check Endpoints.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (database and Redis reachable)
- /health/detailed: Per-component status including the blockchain RPC
  node, the impact APIs and semaphore usage
"""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from modules.backend.core.concurrency import get_semaphore_status
from modules.backend.core.config import get_app_config, get_redis_url
from modules.backend.core.database import get_session
from modules.backend.core.logging import get_logger
from modules.backend.core.utils import utc_now
from modules.backend.integrations.status import check_blockchain, check_external_apis

router = APIRouter()
logger = get_logger(__name__)


async def check_database() -> dict[str, Any]:
    """
    Check database connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    db_config = get_app_config().database
    if not db_config.host or not db_config.name:
        return {"status": "not_configured"}

    try:
        start = utc_now()
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def check_redis() -> dict[str, Any]:
    """
    Check Redis connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    import redis.asyncio as redis

    try:
        start = utc_now()
        client = redis.from_url(get_redis_url())
        try:
            await client.ping()
        finally:
            await client.aclose()
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Redis health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def _run_checks(
    checks: dict[str, Any],
    timeout: float,
) -> dict[str, dict[str, Any]]:
    """Run named check coroutines in parallel. A check that does not finish reports an error."""
    results: dict[str, dict[str, Any]] = {
        name: {"status": "error", "error": "check did not run"} for name in checks
    }
    tasks: dict[str, asyncio.Task] = {}

    try:
        async with asyncio.timeout(timeout):
            async with asyncio.TaskGroup() as tg:
                for name, coro in checks.items():
                    tasks[name] = tg.create_task(coro)
    except* Exception as eg:
        for exc in eg.exceptions:
            logger.warning("Health check task failed", extra={"error": str(exc)})

    for name, task in tasks.items():
        if task.done() and not task.cancelled() and task.exception() is None:
            results[name] = task.result()
    return results


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    No dependency checks; this endpoint should always respond quickly.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check.

    Returns 503 if the database or Redis is unhealthy.
    """
    timeout = get_app_config().observability.health_checks.ready_timeout_seconds
    checks = await _run_checks(
        {"database": check_database(), "redis": check_redis()},
        timeout,
    )

    unhealthy_checks = [
        name for name, check in checks.items()
        if check.get("status") in ("unhealthy", "error")
    ]
    if unhealthy_checks:
        logger.warning(
            "Readiness check failed",
            extra={"unhealthy": unhealthy_checks, "checks": checks},
        )
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    """
    Detailed health check.

    The blockchain and external API checks are informational: an
    unreachable impact API degrades the report but does not make the
    service unhealthy.
    """
    app_config = get_app_config()
    timeout = app_config.observability.health_checks.detailed_timeout_seconds
    checks = await _run_checks(
        {
            "database": check_database(),
            "redis": check_redis(),
            "blockchain": check_blockchain(),
            "external_apis": check_external_apis(),
        },
        timeout,
    )

    core_statuses = [checks["database"].get("status"), checks["redis"].get("status")]
    if "unhealthy" in core_statuses or "error" in core_statuses:
        overall_status = "unhealthy"
    elif any(
        checks[name].get("status") in ("unhealthy", "degraded", "error")
        for name in ("blockchain", "external_apis")
    ):
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    app_settings = app_config.application
    return {
        "status": overall_status,
        "application": {
            "name": app_settings.name,
            "env": app_settings.environment,
            "debug": app_settings.debug,
            "version": app_settings.version,
        },
        "checks": checks,
        "pools": {"semaphores": get_semaphore_status()},
        "timestamp": utc_now().isoformat(),
    }
