"""
Rate Limiting.

Config-driven sliding-window limits, keyed by policy and subject.
Policies live in config/settings/security.yaml under rate_limiting.policies:

    general        - every request, keyed by client IP (applied by middleware)
    mission_start  - starting a mission, keyed by user
    webhook        - inbound webhooks, keyed by service and IP
    blockchain     - mint, user operation and sponsorship calls

Uses in-memory storage; upgrade to Redis INCR + EXPIRE for distributed deployments.
"""

import time
from collections import defaultdict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import RateLimitError
from modules.backend.core.logging import get_logger
from modules.backend.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

DEFAULT_MESSAGE = "Too many requests, please try again later."

# Checks between sweeps of subjects whose windows have fully expired
SWEEP_INTERVAL = 1000


class RateLimitResult:
    """Result of a rate limit check."""

    def __init__(self, allowed: bool, retry_after_seconds: int = 0) -> None:
        self.allowed = allowed
        self.retry_after_seconds = retry_after_seconds


class SlidingWindowRateLimiter:
    """
    Per-policy, per-subject rate limiter.

    A subject is whatever the caller keys on: an IP, a user id, or
    "service:ip". Unknown policies are never limited.
    """

    def __init__(self) -> None:
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._checks_since_sweep = 0

    def check(self, policy: str, subject: str) -> RateLimitResult:
        """
        Check and record a request for this subject under the named policy.

        Returns:
            RateLimitResult indicating whether the request is allowed
        """
        limits = get_app_config().security.rate_limiting.policies.get(policy)
        if limits is None:
            return RateLimitResult(allowed=True)

        now = time.monotonic()
        self._checks_since_sweep += 1
        if self._checks_since_sweep >= SWEEP_INTERVAL:
            self.sweep(now)

        key = f"{policy}:{subject}"
        result = self._check_window(key, now, limits.window_seconds, limits.max_requests)
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "policy": policy,
                    "subject": subject,
                    "limit": limits.max_requests,
                    "window_seconds": limits.window_seconds,
                },
            )
            return result

        self._requests[key].append(now)
        return result

    def enforce(self, policy: str, subject: str) -> None:
        """
        Raises:
            RateLimitError: With the policy's message and Retry-After seconds
        """
        result = self.check(policy, subject)
        if not result.allowed:
            raise RateLimitError(
                policy_message(policy),
                retry_after=result.retry_after_seconds,
            )

    def reset(self) -> None:
        self._requests.clear()
        self._checks_since_sweep = 0

    def sweep(self, now: float | None = None) -> int:
        """
        Drop subjects with no request left inside their policy window.

        Returns:
            Number of subjects removed
        """
        now = time.monotonic() if now is None else now
        policies = get_app_config().security.rate_limiting.policies
        stale = []
        for key, timestamps in self._requests.items():
            limits = policies.get(key.split(":", 1)[0])
            if limits is None or not timestamps or max(timestamps) <= now - limits.window_seconds:
                stale.append(key)
        for key in stale:
            del self._requests[key]
        self._checks_since_sweep = 0
        return len(stale)

    def _check_window(
        self,
        key: str,
        now: float,
        window_seconds: int,
        max_requests: int,
    ) -> RateLimitResult:
        """Check a single rate limit window."""
        cutoff = now - window_seconds
        window = [ts for ts in self._requests.get(key, ()) if ts > cutoff]
        if not window:
            self._requests.pop(key, None)
            return RateLimitResult(allowed=True)
        self._requests[key] = window

        if len(window) >= max_requests:
            oldest = min(window)
            retry_after = int(window_seconds - (now - oldest)) + 1
            return RateLimitResult(allowed=False, retry_after_seconds=retry_after)

        return RateLimitResult(allowed=True)


def policy_message(policy: str) -> str:
    limits = get_app_config().security.rate_limiting.policies.get(policy)
    return limits.message if limits else DEFAULT_MESSAGE


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies the `general` policy to every request by client IP.

    Paths under rate_limiting.skip_paths are exempt. Responds directly
    with the standard error envelope since middleware errors bypass
    the exception handlers.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        app_config = get_app_config()
        if not app_config.features.rate_limit_enabled:
            return await call_next(request)

        skip_paths = app_config.security.rate_limiting.skip_paths
        if any(request.url.path.startswith(path) for path in skip_paths):
            return await call_next(request)

        result = get_rate_limiter().check("general", client_ip(request))
        if result.allowed:
            return await call_next(request)

        request_id = getattr(request.state, "request_id", None)
        body = ErrorResponse(
            error=ErrorDetail(code="RATE_LIMITED", message=policy_message("general")),
            metadata=ResponseMetadata(request_id=request_id),
        )
        return JSONResponse(
            status_code=429,
            content=body.model_dump(mode="json"),
            headers={"Retry-After": str(result.retry_after_seconds)},
        )


_rate_limiter: SlidingWindowRateLimiter | None = None


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Get or create the rate limiter singleton."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = SlidingWindowRateLimiter()
    return _rate_limiter
