"""
Concurrency Infrastructure.

Named semaphores that cap concurrent access to shared dependencies
(database, Redis, third-party impact APIs, the blockchain RPC node).
Sizing is configured in config/settings/concurrency.yaml.

Usage:
    from modules.backend.core.concurrency import get_semaphore

    async with get_semaphore("external_api"):
        result = await client.get(url)
"""

import asyncio

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SEMAPHORE_CAPACITY = 20

_semaphores: dict[str, asyncio.Semaphore] = {}
_semaphore_capacities: dict[str, int] = {}


def get_semaphore(name: str) -> asyncio.Semaphore:
    """Get a named semaphore for concurrency-limiting external calls.

    Semaphores are created lazily. The capacity is read from concurrency.yaml
    under `semaphores.<name>`. If the name is not configured, defaults to 20.
    """
    if name not in _semaphores:
        from modules.backend.core.config import get_app_config
        semaphore_config = get_app_config().concurrency.semaphores
        capacity = getattr(semaphore_config, name, DEFAULT_SEMAPHORE_CAPACITY)
        _semaphores[name] = asyncio.Semaphore(capacity)
        _semaphore_capacities[name] = capacity
        logger.debug("Semaphore created", extra={"name": name, "capacity": capacity})
    return _semaphores[name]


def get_semaphore_status() -> dict[str, dict[str, int]]:
    """Report capacity and free slots for every semaphore created so far."""
    return {
        name: {
            "capacity": _semaphore_capacities[name],
            "available": semaphore._value,
        }
        for name, semaphore in _semaphores.items()
    }


async def drain_semaphores(timeout: float) -> bool:
    """Wait until every semaphore is fully released, or the timeout expires.

    Returns:
        True if all in-flight calls finished in time
    """
    try:
        async with asyncio.timeout(timeout):
            while any(
                semaphore._value < _semaphore_capacities[name]
                for name, semaphore in _semaphores.items()
            ):
                await asyncio.sleep(0.1)
    except TimeoutError:
        logger.warning(
            "Semaphore drain timed out",
            extra={"timeout_seconds": timeout, "status": get_semaphore_status()},
        )
        return False
    return True


async def shutdown_pools() -> None:
    """Drain in-flight calls and drop all semaphores. Called during application shutdown."""
    from modules.backend.core.config import get_app_config

    drain_seconds = get_app_config().concurrency.shutdown.drain_seconds
    await drain_semaphores(drain_seconds)

    _semaphores.clear()
    _semaphore_capacities.clear()
    logger.debug("Semaphores cleared")
