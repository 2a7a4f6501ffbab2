"""
FastAPI Dependencies.

Shared dependencies for request handling: database session, request id,
the Telegram-authenticated user, and per-route rate limits.
"""

import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config, get_settings
from modules.backend.core.database import get_db_session
from modules.backend.core.exceptions import AuthenticationError
from modules.backend.core.logging import get_logger
from modules.backend.core.rate_limit import client_ip, get_rate_limiter
from modules.backend.core.telegram_auth import verify_init_data
from modules.backend.models.user import User
from modules.backend.services.user import UserService

logger = get_logger(__name__)

# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]

# Identity used when auth_telegram_required is off and no initData is sent
DEVELOPMENT_TELEGRAM_USER: dict[str, Any] = {
    "id": 1,
    "username": "dev",
    "first_name": "Developer",
    "language_code": "en",
}


async def get_request_id(request: Request, x_request_id: str | None = Header(None)) -> str:
    """Request id bound by RequestContextMiddleware, falling back to the header."""
    state_id = getattr(request.state, "request_id", None)
    return state_id or x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def get_current_user(
    request: Request,
    session: DbSession,
    authorization: str | None = Header(None),
) -> User:
    """
    Authenticate the caller from `Authorization: Bearer <initData>`.

    Verifies the initData signature, then creates or refreshes the
    matching User row.

    Raises:
        AuthenticationError: Missing header, bad format, expired or forged initData
    """
    app_config = get_app_config()

    if not authorization:
        if app_config.features.auth_telegram_required:
            raise AuthenticationError("Authorization header required")
        telegram_user = DEVELOPMENT_TELEGRAM_USER
    else:
        scheme, _, init_data = authorization.partition(" ")
        if scheme.lower() != "bearer" or not init_data.strip():
            raise AuthenticationError("Invalid Telegram data")

        auth_config = app_config.security.telegram_auth
        verified = verify_init_data(
            init_data.strip(),
            get_settings().telegram_bot_token,
            max_age_seconds=auth_config.max_age_seconds,
            variant=auth_config.hmac_variant,
        )
        telegram_user = verified.user

    user = await UserService(session).sync_telegram_user(telegram_user)

    request.state.user_id = user.id
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def limit_by_user(policy: str) -> Callable[..., Awaitable[None]]:
    """
    Rate-limit dependency keyed by the authenticated user.

    Usage:
        @router.post("/{id}/start", dependencies=[Depends(limit_by_user("mission_start"))])
    """

    async def dependency(user: CurrentUser) -> None:
        if get_app_config().features.rate_limit_enabled:
            get_rate_limiter().enforce(policy, f"user:{user.id}")

    return dependency


def limit_by_ip(policy: str, scope_param: str | None = None) -> Callable[..., Awaitable[None]]:
    """
    Rate-limit dependency keyed by client IP.

    Args:
        policy: Policy name in security.yaml
        scope_param: Optional path parameter prefixed to the key (e.g. "service")
    """

    async def dependency(request: Request) -> None:
        if not get_app_config().features.rate_limit_enabled:
            return
        subject = client_ip(request)
        if scope_param:
            subject = f"{request.path_params.get(scope_param, '')}:{subject}"
        get_rate_limiter().enforce(policy, subject)

    return dependency
