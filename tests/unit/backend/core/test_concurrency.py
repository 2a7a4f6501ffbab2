"""Unit tests for modules.backend.core.concurrency."""

import asyncio

import pytest

import modules.backend.core.concurrency as concurrency_module
from modules.backend.core.concurrency import (
    DEFAULT_SEMAPHORE_CAPACITY,
    drain_semaphores,
    get_semaphore,
    get_semaphore_status,
    shutdown_pools,
)


@pytest.fixture(autouse=True)
def _reset_semaphores():
    concurrency_module._semaphores.clear()
    concurrency_module._semaphore_capacities.clear()
    yield
    concurrency_module._semaphores.clear()
    concurrency_module._semaphore_capacities.clear()


class TestGetSemaphore:
    """Tests for named semaphores sized from concurrency.yaml."""

    def test_configured_capacity(self):
        """Should size the blockchain semaphore from config (5)."""
        get_semaphore("blockchain")
        assert get_semaphore_status()["blockchain"] == {"capacity": 5, "available": 5}

    def test_same_instance(self):
        assert get_semaphore("external_api") is get_semaphore("external_api")

    def test_unknown_name_uses_default(self):
        get_semaphore("ipfs")
        assert get_semaphore_status()["ipfs"]["capacity"] == DEFAULT_SEMAPHORE_CAPACITY


class TestDrain:
    """Tests for shutdown draining."""

    @pytest.mark.asyncio
    async def test_drains_when_idle(self):
        get_semaphore("external_api")
        assert await drain_semaphores(timeout=0.5) is True

    @pytest.mark.asyncio
    async def test_waits_for_in_flight_call(self):
        """Should return True once the holder releases within the timeout."""
        semaphore = get_semaphore("blockchain")
        await semaphore.acquire()
        asyncio.get_running_loop().call_later(0.05, semaphore.release)

        assert await drain_semaphores(timeout=1) is True

    @pytest.mark.asyncio
    async def test_times_out(self):
        """Should give up and return False while a slot stays held."""
        semaphore = get_semaphore("blockchain")
        await semaphore.acquire()
        try:
            assert await drain_semaphores(timeout=0.2) is False
        finally:
            semaphore.release()

    @pytest.mark.asyncio
    async def test_shutdown_clears_state(self):
        get_semaphore("redis")
        await shutdown_pools()
        assert get_semaphore_status() == {}
