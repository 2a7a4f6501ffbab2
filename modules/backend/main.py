"""
FastAPI Application Entry Point.

Builds the Eco Touch backend: the versioned API, the unversioned service
endpoints the Mini App calls, inbound webhooks and, when enabled, the
Telegram bot webhook.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modules.backend.api import health, webhooks
from modules.backend.api.services import router as services_router
from modules.backend.api.v1 import router as api_v1_router
from modules.backend.core.config import AppConfig, get_app_config
from modules.backend.core.exception_handlers import register_exception_handlers
from modules.backend.core.logging import get_logger, setup_logging
from modules.backend.core.middleware import RequestContextMiddleware
from modules.backend.core.rate_limit import RateLimitMiddleware

logger = get_logger(__name__)

_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_config = get_app_config()
    features = app_config.features
    setup_logging(level=app_config.logging.level)

    if features.security_startup_checks_enabled:
        from modules.backend.core.startup_checks import run_startup_checks
        run_startup_checks()

    if features.tasks_queue_enabled:
        from modules.backend.tasks.broker import start_broker
        await start_broker()

    if features.events_enabled and features.events_publish_enabled:
        from modules.backend.events.broker import connect_event_publisher
        await connect_event_publisher()

    logger.info(
        "Application starting",
        extra={
            "app_name": app_config.application.name,
            "env": app_config.application.environment,
        },
    )
    yield
    logger.info("Application shutting down")

    await _shutdown(app_config)


async def _shutdown(app_config: AppConfig) -> None:
    from modules.backend.core.concurrency import shutdown_pools
    from modules.backend.core.database import dispose_engine
    from modules.backend.events.broker import close_event_publisher
    from modules.backend.integrations.http import close_integration_clients
    from modules.backend.tasks.broker import stop_broker

    if app_config.features.channel_telegram_enabled:
        from modules.telegram.bot import close_bot
        await close_bot()

    await close_integration_clients()
    await stop_broker()
    await close_event_publisher()
    await shutdown_pools()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app_config = get_app_config()
    app_settings = app_config.application
    docs_enabled = app_settings.docs_enabled and app_settings.debug

    app = FastAPI(
        title=app_settings.name,
        description=app_settings.description,
        version=app_settings.version,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Added last runs first: request context is bound before rate limiting
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestContextMiddleware)

    cors_origins = app_settings.cors.origins
    if cors_origins:
        cors = app_config.security.cors
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=cors.allow_methods,
            allow_headers=cors.allow_headers,
        )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_v1_router, prefix=app_settings.api_prefix)
    app.include_router(services_router, prefix="/api")
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

    if app_config.features.channel_telegram_enabled:
        _mount_telegram(app)

    return app


def _mount_telegram(app: FastAPI) -> None:
    """Mount the bot's webhook route."""
    from modules.telegram.bot import get_bot, get_dispatcher
    from modules.telegram.webhook import get_webhook_router

    app.include_router(get_webhook_router(get_bot(), get_dispatcher()))
    logger.info("Telegram channel mounted")


def get_app() -> FastAPI:
    """
    Get the application instance (lazy initialization).

    Use this instead of importing `app` directly to avoid
    import-time configuration errors.
    """
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: `uvicorn modules.backend.main:app`
def __getattr__(name: str) -> FastAPI:
    """Support lazy access to `app` for uvicorn compatibility."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
