"""
Structured Logging.

One structlog pipeline for the API, the taskiq worker, the FastStream
consumers and the bot. Settings live in config/settings/logging.yaml;
``setup_logging`` arguments override them (``run.py -v`` uses this).

Every record carries timestamp, level, logger, event, func_name and
lineno. Inside an HTTP request RequestContextMiddleware also binds
request_id, client, method and path, and ``get_current_user`` binds
user_id. Outside a request, set ``source`` explicitly:

    logger = get_logger(__name__)
    logger.info("Mission started", extra={"mission_id": mission.id})
    log_with_source(logger, "webhooks", "info", "Webhook received", service="cloverly")

Values under secret-looking keys (private keys, initData, API keys)
are masked before rendering.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

from modules.backend.core.config import find_project_root, load_yaml_config

VALID_SOURCES = frozenset({
    "web",
    "telegram",
    "tasks",
    "events",
    "webhooks",
    "blockchain",
    "integrations",
    "internal",
    "unknown",
})

SENSITIVE_KEYS = frozenset({
    "authorization",
    "init_data",
    "private_key",
    "sbt_signer_private_key",
    "api_key",
    "paymaster_signature",
    "bot_token",
})

# Libraries that log every request at INFO
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "web3", "aiogram.event")

_logging_config: dict[str, Any] | None = None


def _get_logging_config() -> dict[str, Any]:
    global _logging_config
    if _logging_config is None:
        _logging_config = load_yaml_config("logging.yaml")
    return _logging_config


def mask_secrets(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """structlog processor replacing sensitive values, including inside ``extra``."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS and value:
            event_dict[key] = "***"
        elif isinstance(value, dict):
            event_dict[key] = {
                k: "***" if k.lower() in SENSITIVE_KEYS and v else v
                for k, v in value.items()
            }
    return event_dict


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        format_type: "json" or "console"
        enable_console: Write to stdout
        enable_file_logging: Write JSONL to the rotating file from logging.yaml
    """
    config = _get_logging_config()
    handlers = config["handlers"]

    effective_level = (level or config["level"]).upper()
    effective_format = format_type or config["format"]
    console_enabled = handlers["console"]["enabled"] if enable_console is None else enable_console
    file_enabled = handlers["file"]["enabled"] if enable_file_logging is None else enable_file_logging

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        mask_secrets,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(ensure_ascii=False),
        foreign_pre_chain=shared_processors,
    )
    if effective_format == "console":
        console_formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True),
            foreign_pre_chain=shared_processors,
        )
    else:
        console_formatter = json_formatter

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, effective_level))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if file_enabled:
        file_config = handlers["file"]
        log_path = _resolve_log_path(file_config["path"])
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=file_config["max_bytes"],
            backupCount=file_config["backup_count"],
            encoding="utf-8",
        )
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _resolve_log_path(configured_path: str) -> Path:
    return find_project_root() / configured_path


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Log with an explicit ``source`` field for work outside HTTP requests.

    Unknown sources are recorded as "unknown" so dashboards filtering on
    VALID_SOURCES never miss a record.

    Raises:
        AttributeError: If level is not a logger method
    """
    if source not in VALID_SOURCES:
        source = "unknown"
    getattr(logger, level.lower())(message, source=source, **kwargs)
