"""
Startup Security Validation.

Checks security invariants before the application accepts traffic.
If any check fails, the application refuses to start with a clear
error message.

Called during FastAPI lifespan initialization.
"""

from modules.backend.core.config import AppConfig, Settings, get_app_config, get_settings
from modules.backend.core.logging import get_logger

logger = get_logger(__name__)


class StartupSecurityError(RuntimeError):
    """Raised when a startup security check fails."""

    pass


def run_startup_checks() -> None:
    """
    Validate all security invariants at startup.

    Raises:
        StartupSecurityError: If any check fails
    """
    app_config = get_app_config()
    settings = get_settings()
    environment = app_config.application.environment
    is_production = environment == "production"

    errors: list[str] = []

    _check_telegram_auth(settings, app_config, errors)
    _check_channel_secrets(settings, app_config, errors)
    _check_production_safety(app_config, is_production, errors)
    _check_integration_keys(settings, app_config)

    if errors:
        for error in errors:
            logger.error("Startup security check failed", extra={"check": error})
        raise StartupSecurityError(
            f"Startup blocked: {len(errors)} security check(s) failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    logger.info(
        "Startup security checks passed",
        extra={"environment": environment, "checks_run": 4},
    )


def _check_telegram_auth(settings: Settings, app_config: AppConfig, errors: list[str]) -> None:
    """initData cannot be verified without the bot token."""
    if app_config.features.auth_telegram_required and not settings.telegram_bot_token:
        errors.append("auth_telegram_required is true but TELEGRAM_BOT_TOKEN is empty")


def _check_channel_secrets(settings: Settings, app_config: AppConfig, errors: list[str]) -> None:
    """Validate that the enabled bot channel has its webhook secret."""
    if not app_config.features.channel_telegram_enabled:
        return

    if not settings.telegram_bot_token:
        errors.append("channel_telegram_enabled is true but TELEGRAM_BOT_TOKEN is empty")

    min_length = app_config.security.secrets_validation.webhook_secret_min_length
    if len(settings.telegram_webhook_secret) < min_length:
        errors.append(
            f"TELEGRAM_WEBHOOK_SECRET is {len(settings.telegram_webhook_secret)} chars, "
            f"minimum is {min_length}"
        )


def _check_production_safety(app_config: AppConfig, is_production: bool, errors: list[str]) -> None:
    """Validate production environment safety constraints."""
    if not is_production:
        return

    app = app_config.application
    if app.debug:
        errors.append("debug is true in production environment")

    if app_config.features.api_detailed_errors:
        errors.append("api_detailed_errors is true in production environment")

    if app.docs_enabled:
        errors.append("docs_enabled is true in production environment")

    if not app_config.features.auth_telegram_required:
        errors.append("auth_telegram_required is false in production environment")

    cors_config = app_config.security.cors
    if cors_config.enforce_in_production:
        localhost_origins = [o for o in app.cors.origins if "localhost" in o]
        if localhost_origins:
            errors.append(
                f"CORS origins contain localhost in production: {localhost_origins}"
            )


def _check_integration_keys(settings: Settings, app_config: AppConfig) -> None:
    """Missing third-party keys degrade the integration; warn, never block."""
    missing = [
        name
        for name, value in (
            ("CLOVERLY_API_KEY", settings.cloverly_api_key),
            ("ONE_CLICK_IMPACT_API_KEY", settings.one_click_impact_api_key),
            ("NATION_BUILDER_API_KEY", settings.nation_builder_api_key),
        )
        if not value
    ]
    if not app_config.blockchain.sbt.contract_address or not settings.sbt_signer_private_key:
        missing.append("SBT contract / SBT_SIGNER_PRIVATE_KEY")

    if missing:
        logger.warning(
            "Integrations running without credentials",
            extra={"missing": missing},
        )
