"""
Configuration Management.

Loads secrets from config/.env and settings from config/settings/*.yaml.
No hardcoded values in code. All configuration comes from these sources.

Secrets (.env):
    DB_PASSWORD, REDIS_PASSWORD, TELEGRAM_BOT_TOKEN, TELEGRAM_WEBHOOK_SECRET,
    CLOVERLY_API_KEY, ONE_CLICK_IMPACT_API_KEY, NATION_BUILDER_API_KEY,
    SBT_SIGNER_PRIVATE_KEY, PIMLICO_API_KEY, ALCHEMY_API_KEY,
    ALCHEMY_POLICY_ID, CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_API_TOKEN,
    INFURA_PROJECT_ID

Settings (YAML):
    application.yaml   - App identity, server, cors, telegram, share links
    database.yaml      - Database and Redis connection settings
    logging.yaml       - Logging configuration
    features.yaml      - Feature flags
    security.yaml      - initData verification, rate limit policies
    observability.yaml - Health check timeouts
    concurrency.yaml   - Semaphores, shutdown timing
    events.yaml        - Event bus broker, streams, consumers
    integrations.yaml  - Third-party impact APIs, gas sponsorship, bundler
    blockchain.yaml    - RPC endpoint, SBT contract, account abstraction
    missions.yaml      - Mission catalog, badge and rarity tiers
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from modules.backend.core.config_schema import (
    ApplicationSchema,
    BlockchainSchema,
    ConcurrencySchema,
    DatabaseSchema,
    EventsSchema,
    FeaturesSchema,
    IntegrationsSchema,
    LoggingSchema,
    MissionsSchema,
    ObservabilitySchema,
    SecuritySchema,
)


def find_project_root() -> Path:
    """Find project root by looking for .project_root marker file."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".project_root").exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def validate_project_root() -> Path:
    """
    Validate that the project root can be found.

    Raises SystemExit with a clear message if .project_root is not found.
    Use this in entry scripts before any configuration loading.
    """
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML configuration file from config/settings/."""
    project_root = find_project_root()
    config_path = project_root / "config" / "settings" / filename

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """
    Secrets loaded from config/.env. Only passwords, tokens, and keys.

    Third-party keys default to empty: an integration without a key runs
    in mock mode instead of failing at import time.
    """

    db_password: str
    redis_password: str = ""
    telegram_bot_token: str
    telegram_webhook_secret: str = ""

    cloverly_api_key: str = ""
    one_click_impact_api_key: str = ""
    nation_builder_api_key: str = ""

    sbt_signer_private_key: str = ""

    pimlico_api_key: str = ""
    alchemy_api_key: str = ""
    alchemy_policy_id: str = ""
    cloudflare_account_id: str = ""
    cloudflare_api_token: str = ""
    infura_project_id: str = ""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type, filename: str) -> Any:
    """Load YAML and validate against schema. Returns typed model instance."""
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ValueError(
            f"Invalid configuration in {filename}:\n{e}"
        ) from e


class AppConfig:
    """
    Application configuration loaded from YAML files.

    Each YAML file is validated against its Pydantic schema at load time.
    Missing keys, wrong types, or unknown fields raise a clear error
    immediately instead of causing cryptic KeyErrors later.

    Properties return typed Pydantic model instances with attribute access.
    """

    def __init__(self) -> None:
        self._application = _load_validated(ApplicationSchema, "application.yaml")
        self._database = _load_validated(DatabaseSchema, "database.yaml")
        self._logging = _load_validated(LoggingSchema, "logging.yaml")
        self._features = _load_validated(FeaturesSchema, "features.yaml")
        self._security = _load_validated(SecuritySchema, "security.yaml")
        self._observability = _load_validated(ObservabilitySchema, "observability.yaml")
        self._concurrency = _load_validated(ConcurrencySchema, "concurrency.yaml")
        self._events = _load_validated(EventsSchema, "events.yaml")
        self._integrations = _load_validated(IntegrationsSchema, "integrations.yaml")
        self._blockchain = _load_validated(BlockchainSchema, "blockchain.yaml")
        self._missions = _load_validated(MissionsSchema, "missions.yaml")

    @property
    def application(self) -> ApplicationSchema:
        """Application settings."""
        return self._application

    @property
    def database(self) -> DatabaseSchema:
        """Database settings."""
        return self._database

    @property
    def logging(self) -> LoggingSchema:
        """Logging settings."""
        return self._logging

    @property
    def features(self) -> FeaturesSchema:
        """Feature flags."""
        return self._features

    @property
    def security(self) -> SecuritySchema:
        """Security settings (initData verification, rate limits)."""
        return self._security

    @property
    def observability(self) -> ObservabilitySchema:
        """Observability settings (health checks)."""
        return self._observability

    @property
    def concurrency(self) -> ConcurrencySchema:
        """Concurrency settings (semaphores, shutdown)."""
        return self._concurrency

    @property
    def events(self) -> EventsSchema:
        """Event architecture settings (broker, streams, consumers)."""
        return self._events

    @property
    def integrations(self) -> IntegrationsSchema:
        """Third-party API settings."""
        return self._integrations

    @property
    def blockchain(self) -> BlockchainSchema:
        """Chain, SBT contract and account abstraction settings."""
        return self._blockchain

    @property
    def missions(self) -> MissionsSchema:
        """Mission catalog and badge tiers."""
        return self._missions


@lru_cache
def get_settings() -> Settings:
    """Get cached secrets instance. Resolves .env path from project root."""
    env_path = find_project_root() / "config" / ".env"
    return Settings(_env_file=str(env_path))


@lru_cache
def get_app_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()


def get_database_url(async_driver: bool = True) -> str:
    """
    Construct database URL from YAML config and secrets.

    Args:
        async_driver: Use asyncpg driver if True, psycopg2 if False.

    Returns:
        Database connection URL string.
    """
    db = get_app_config().database
    password = get_settings().db_password
    driver = "postgresql+asyncpg" if async_driver else "postgresql"
    return f"{driver}://{db.user}:{password}@{db.host}:{db.port}/{db.name}"


def get_redis_url() -> str:
    """
    Construct Redis URL from YAML config and secrets.

    Returns:
        Redis connection URL string.
    """
    redis = get_app_config().database.redis
    password = get_settings().redis_password
    return f"redis://:{password}@{redis.host}:{redis.port}/{redis.db}"

