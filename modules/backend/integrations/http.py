"""
Resilient HTTP Client.

One httpx.AsyncClient per third-party service, wrapped in the standard
resilience stack (outside-in):

    Circuit Breaker (aiobreaker) → Retry (tenacity) → Semaphore → Timeout → Call

Only transport errors, timeouts and 5xx responses are retried. Every
failure that escapes the stack surfaces as ExternalServiceError.

Usage:
    client = IntegrationClient.from_config(
        "cloverly",
        get_app_config().integrations.cloverly,
        headers={"Authorization": f"Bearer {api_key}"},
    )
    data = await client.request_json("GET", "/2022-11/projects")
"""

import asyncio
from typing import Any

import aiobreaker
import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from modules.backend.core.concurrency import get_semaphore
from modules.backend.core.config_schema import CircuitBreakerSchema, RetrySchema
from modules.backend.core.exceptions import ExternalServiceError
from modules.backend.core.logging import get_logger
from modules.backend.core.resilience import create_circuit_breaker, log_retry

logger = get_logger(__name__)

_clients: list["IntegrationClient"] = []


def is_retryable(exc: BaseException) -> bool:
    """Transport failures, timeouts and 5xx are transient; 4xx are not."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, (httpx.TransportError, TimeoutError))


class IntegrationClient:
    """HTTP client for one external service with breaker, retry, semaphore and timeout."""

    def __init__(
        self,
        service: str,
        base_url: str = "",
        timeout: float = 30,
        circuit_breaker: CircuitBreakerSchema | None = None,
        retry: RetrySchema | None = None,
        headers: dict[str, str] | None = None,
        semaphore: str = "external_api",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.service = service
        self.timeout = timeout
        self.semaphore_name = semaphore
        self._retry = retry or RetrySchema(max_attempts=3, backoff_multiplier=1, backoff_max=10)
        breaker_config = circuit_breaker or CircuitBreakerSchema(fail_max=5, timeout_duration=30)
        self.breaker = create_circuit_breaker(
            service,
            fail_max=breaker_config.fail_max,
            timeout_duration=breaker_config.timeout_duration,
        )
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json", **(headers or {})},
            transport=transport,
        )
        _clients.append(self)

    @classmethod
    def from_config(
        cls,
        service: str,
        config: Any,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "IntegrationClient":
        """Build from an integrations.yaml section (base_url, timeout, circuit_breaker, retry)."""
        return cls(
            service,
            base_url=getattr(config, "base_url", ""),
            timeout=config.timeout,
            circuit_breaker=config.circuit_breaker,
            retry=config.retry,
            headers=headers,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Send a request through the resilience stack.

        Raises:
            ExternalServiceError: On open breaker, exhausted retries, or non-2xx response
        """
        try:
            return await self.breaker.call_async(
                self._send_with_retry, method, url, params, json, headers,
            )
        except aiobreaker.CircuitBreakerError as e:
            raise ExternalServiceError(
                f"{self.service} is temporarily unavailable",
                service=self.service,
            ) from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "External service returned an error",
                extra={
                    "service": self.service,
                    "status": e.response.status_code,
                    "url": str(e.request.url.copy_with(query=None)),
                },
            )
            raise ExternalServiceError(
                f"{self.service} returned HTTP {e.response.status_code}",
                service=self.service,
            ) from e
        except (httpx.HTTPError, TimeoutError) as e:
            logger.warning(
                "External service call failed",
                extra={"service": self.service, "error": str(e) or type(e).__name__},
            )
            raise ExternalServiceError(
                f"{self.service} request failed",
                service=self.service,
            ) from e

    async def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self.request(method, url, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"{self.service} returned invalid JSON",
                service=self.service,
            ) from e

    async def json_rpc(
        self,
        url: str,
        method: str,
        params: list[Any],
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Call a JSON-RPC 2.0 method and return its `result`.

        Raises:
            ExternalServiceError: On transport failure, a malformed reply or an
                `error` member in the reply
        """
        data = await self.request_json(
            "POST",
            url,
            json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
            headers=headers,
        )
        if not isinstance(data, dict):
            raise ExternalServiceError(
                f"{self.service} returned an invalid {method} reply",
                service=self.service,
            )
        error = data.get("error")
        if error:
            message = (error.get("message") if isinstance(error, dict) else str(error)) or f"{method} failed"
            logger.warning(
                "JSON-RPC error",
                extra={"service": self.service, "method": method, "error": message},
            )
            raise ExternalServiceError(message, service=self.service)
        return data.get("result")

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json: Any,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._retry.max_attempts),
            wait=wait_exponential(
                multiplier=self._retry.backoff_multiplier,
                min=1,
                max=self._retry.backoff_max,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=log_retry,
            reraise=True,
        )
        return await retrying(self._send, method, url, params, json, headers)

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json: Any,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        async with get_semaphore(self.semaphore_name):
            async with asyncio.timeout(self.timeout):
                response = await self._http.request(
                    method, url, params=params, json=json, headers=headers,
                )
        response.raise_for_status()
        return response

    async def aclose(self) -> None:
        await self._http.aclose()


async def close_integration_clients() -> None:
    """Close every HTTP client created so far. Called during application shutdown."""
    while _clients:
        client = _clients.pop()
        await client.aclose()
    logger.debug("Integration clients closed")
