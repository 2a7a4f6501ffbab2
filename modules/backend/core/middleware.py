"""
Request Context Middleware.

Stamps every HTTP request with a request id and the calling client,
binds both to structlog, and reports timing on the way out.

Headers read:
    X-Request-ID     - propagated when supplied, generated otherwise
    X-Client         - calling surface (miniapp, bot, webhook, admin)

Headers written:
    X-Request-ID
    X-Response-Time  - whole milliseconds, e.g. "12ms"
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from modules.backend.core.logging import get_logger

logger = get_logger(__name__)

KNOWN_CLIENTS = frozenset({"miniapp", "bot", "webhook", "admin"})


def resolve_client(request: Request) -> str:
    """Classify the caller; webhook paths are always ``webhook``."""
    if request.url.path.startswith("/webhooks/"):
        return "webhook"
    client = request.headers.get("X-Client", "").strip().lower()
    return client if client in KNOWN_CLIENTS else "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request context for logs and handlers.

    Handlers read ``request.state.request_id`` and ``request.state.client``;
    ``get_current_user`` later adds ``request.state.user_id``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        client = resolve_client(request)
        started = time.perf_counter()

        request.state.request_id = request_id
        request.state.client = client

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client=client,
            method=request.method,
            path=request.url.path,
        )
        logger.debug(
            "Request started",
            extra={"client_host": request.client.host if request.client else None},
        )

        try:
            response = await call_next(request)
            duration_ms = _elapsed_ms(started)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"
            logger.debug(
                "Request completed",
                extra={"status_code": response.status_code, "duration_ms": duration_ms},
            )
            return response
        except Exception as exc:
            logger.error(
                "Request failed with exception",
                extra={
                    "duration_ms": _elapsed_ms(started),
                    "error_type": type(exc).__name__,
                },
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
