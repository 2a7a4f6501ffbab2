"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema   → application.yaml
    DatabaseSchema      → database.yaml
    LoggingSchema       → logging.yaml
    FeaturesSchema      → features.yaml
    SecuritySchema      → security.yaml
    ObservabilitySchema → observability.yaml
    ConcurrencySchema   → concurrency.yaml
    EventsSchema        → events.yaml
    IntegrationsSchema  → integrations.yaml
    BlockchainSchema    → blockchain.yaml
    MissionsSchema      → missions.yaml
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]


class PaginationSchema(_StrictBase):
    default_limit: int
    max_limit: int


class TimeoutsSchema(_StrictBase):
    database: int
    external_api: int
    background: int


class TelegramAppSchema(_StrictBase):
    webhook_path: str
    mini_app_url: str


class ShareSchema(_StrictBase):
    default_protocol: str


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    docs_enabled: bool
    server: ServerSchema
    cors: CorsSchema
    pagination: PaginationSchema
    timeouts: TimeoutsSchema
    telegram: TelegramAppSchema
    share: ShareSchema


# =============================================================================
# database.yaml
# =============================================================================


class BrokerSchema(_StrictBase):
    queue_name: str
    result_expiry_seconds: int


class RedisSchema(_StrictBase):
    host: str
    port: int
    db: int
    broker: BrokerSchema


class DatabaseSchema(_StrictBase):
    host: str
    port: int
    name: str
    user: str
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    echo: bool
    echo_pool: bool
    redis: RedisSchema


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    auth_telegram_required: bool
    api_detailed_errors: bool
    api_request_logging: bool
    rate_limit_enabled: bool
    channel_telegram_enabled: bool
    security_startup_checks_enabled: bool
    missions_auto_run_enabled: bool
    missions_auto_mint_enabled: bool
    tasks_queue_enabled: bool
    tasks_inline_fallback_enabled: bool
    events_enabled: bool
    events_publish_enabled: bool


# =============================================================================
# security.yaml
# =============================================================================


class TelegramAuthSchema(_StrictBase):
    max_age_seconds: int
    hmac_variant: Literal["webapp", "sha256"]


class RateLimitPolicySchema(_StrictBase):
    max_requests: int = Field(gt=0)
    window_seconds: int = Field(gt=0)
    message: str


class BotRateLimitSchema(_StrictBase):
    messages_per_minute: int


class RateLimitingSchema(_StrictBase):
    skip_paths: list[str]
    policies: dict[str, RateLimitPolicySchema]
    telegram_bot: BotRateLimitSchema


class SecretsValidationSchema(_StrictBase):
    webhook_secret_min_length: int


class CorsEnforcementSchema(_StrictBase):
    enforce_in_production: bool
    allow_methods: list[str]
    allow_headers: list[str]


class SecuritySchema(_StrictBase):
    telegram_auth: TelegramAuthSchema
    rate_limiting: RateLimitingSchema
    secrets_validation: SecretsValidationSchema
    cors: CorsEnforcementSchema


# =============================================================================
# observability.yaml
# =============================================================================


class HealthChecksSchema(_StrictBase):
    ready_timeout_seconds: int
    detailed_timeout_seconds: int


class ObservabilitySchema(_StrictBase):
    health_checks: HealthChecksSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class SemaphoresSchema(_StrictBase):
    database: int
    redis: int
    external_api: int
    blockchain: int


class ShutdownSchema(_StrictBase):
    drain_seconds: int


class ConcurrencySchema(_StrictBase):
    semaphores: SemaphoresSchema
    shutdown: ShutdownSchema


# =============================================================================
# events.yaml
# =============================================================================


class EventBrokerSchema(_StrictBase):
    type: str


class EventStreamsSchema(_StrictBase):
    default_maxlen: int


class CircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class RetrySchema(_StrictBase):
    max_attempts: int
    backoff_multiplier: int
    backoff_max: int


class ConsumerConfigSchema(_StrictBase):
    stream: str
    group: str
    criticality: str
    circuit_breaker: CircuitBreakerSchema
    retry: RetrySchema
    processing_timeout: int


class EventDlqSchema(_StrictBase):
    enabled: bool
    stream_prefix: str


class EventsSchema(_StrictBase):
    broker: EventBrokerSchema
    streams: EventStreamsSchema
    consumers: dict[str, ConsumerConfigSchema]
    dlq: EventDlqSchema


# =============================================================================
# integrations.yaml
# =============================================================================


class IntegrationSchema(_StrictBase):
    base_url: str
    timeout: int
    circuit_breaker: CircuitBreakerSchema
    retry: RetrySchema


class GasSponsorshipSchema(_StrictBase):
    service: str
    daily_limit: int
    pimlico_url: str
    alchemy_url: str
    cloudflare_url: str
    infura_url: str
    timeout: int
    circuit_breaker: CircuitBreakerSchema
    retry: RetrySchema


class BundlerSchema(_StrictBase):
    timeout: int
    circuit_breaker: CircuitBreakerSchema
    retry: RetrySchema


class IntegrationsSchema(_StrictBase):
    cloverly: IntegrationSchema
    one_click_impact: IntegrationSchema
    nation_builder: IntegrationSchema
    gas_sponsorship: GasSponsorshipSchema
    bundler: BundlerSchema


# =============================================================================
# blockchain.yaml
# =============================================================================


class SbtContractSchema(_StrictBase):
    contract_address: str
    metadata_base_url: str


class AccountAbstractionSchema(_StrictBase):
    entry_point_address: str
    account_factory_address: str
    paymaster_address: str
    bundler_url: str


class BlockchainSchema(_StrictBase):
    rpc_url: str
    chain_id: int
    request_timeout: int
    receipt_timeout: int
    circuit_breaker: CircuitBreakerSchema
    sbt: SbtContractSchema
    account_abstraction: AccountAbstractionSchema


# =============================================================================
# missions.yaml
# =============================================================================


class BadgeLevelSchema(_StrictBase):
    level: str
    min_impact: int


class RarityLevelSchema(_StrictBase):
    level: str
    threshold: int
    color: str


class AutomationSchema(_StrictBase):
    default_offset_weight_kg: float
    default_payment_method: Literal["card", "bank_transfer", "crypto"]
    default_donation_recipient: str


class MissionTemplateSchema(_StrictBase):
    id: str
    type: Literal["carbon_offset", "donation", "petition"]
    title: str
    description: str
    impact: int
    cost: float
    currency: Literal["KRW", "USD"]
    duration_days: int
    requirements: list[str]


class MissionsSchema(_StrictBase):
    badge_levels: list[BadgeLevelSchema]
    rarity_levels: list[RarityLevelSchema]
    mission_names: dict[str, str]
    mission_colors: dict[str, str]
    receipt_issuers: dict[str, str]
    automation: AutomationSchema
    catalog: list[MissionTemplateSchema]
