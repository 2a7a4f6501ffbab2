"""
Resilience Helpers.

Circuit breakers and retry logging shared by the partner API clients,
the blockchain client and the notification consumers.

Calls to an upstream are wrapped outside-in as:
    circuit breaker (aiobreaker) -> retry (tenacity) -> semaphore -> timeout -> call

Every breaker transition and retry is logged with a ``resilience_event``
field, so ``jq 'select(.resilience_event != null)' logs/system.jsonl``
shows the upstream's health history.
"""

from datetime import timedelta
from typing import Any

import aiobreaker

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

_STATE_EVENTS = {
    "open": "circuit_breaker_opened",
    "half-open": "circuit_breaker_half_open",
    "closed": "circuit_breaker_closed",
}


class ResilienceLogger(aiobreaker.CircuitBreakerListener):
    """Logs breaker transitions and recorded failures for one upstream."""

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency

    def state_change(self, cb: aiobreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        state = str(new_state).lower()
        log = logger.error if state == "open" else logger.info
        log(
            f"Circuit breaker {self.dependency}: {old_state} -> {new_state}",
            extra={
                "resilience_event": _STATE_EVENTS.get(state, f"circuit_breaker_{state}"),
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
            },
        )

    def failure(self, cb: aiobreaker.CircuitBreaker, exception: Exception) -> None:
        logger.warning(
            f"Circuit breaker {self.dependency}: failure recorded",
            extra={
                "resilience_event": "circuit_breaker_failure",
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
                "error": str(exception) or type(exception).__name__,
            },
        )


def log_retry(retry_state: Any) -> None:
    """tenacity ``before_sleep`` hook."""
    error = None
    if retry_state.outcome is not None and retry_state.outcome.failed:
        exc = retry_state.outcome.exception()
        error = str(exc) or type(exc).__name__

    fn_name = getattr(retry_state.fn, "__qualname__", None) or "unknown"
    logger.warning(
        f"Retrying {fn_name} (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": fn_name,
            "attempt": retry_state.attempt_number,
            "elapsed_ms": round(retry_state.seconds_since_start * 1000)
            if retry_state.seconds_since_start is not None else None,
            "error": error,
        },
    )


def create_circuit_breaker(
    dependency: str,
    fail_max: int = 5,
    timeout_duration: int = 30,
) -> aiobreaker.CircuitBreaker:
    """
    Breaker for one upstream.

    Args:
        dependency: Upstream name used in log records (e.g. "cloverly", "polygon-rpc")
        fail_max: Consecutive failures before the breaker opens
        timeout_duration: Seconds before a half-open trial call is allowed
    """
    return aiobreaker.CircuitBreaker(
        fail_max=fail_max,
        timeout_duration=timedelta(seconds=timeout_duration),
        listeners=[ResilienceLogger(dependency)],
    )
