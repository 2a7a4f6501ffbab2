"""
Unit Tests for structured logging setup.
"""

import logging
from logging.handlers import RotatingFileHandler
from unittest.mock import MagicMock, patch

import pytest

from modules.backend.core import logging as logging_module
from modules.backend.core.logging import (
    NOISY_LOGGERS,
    VALID_SOURCES,
    get_logger,
    log_with_source,
    mask_secrets,
    setup_logging,
)


@pytest.fixture
def logging_config(tmp_path) -> dict:
    return {
        "level": "INFO",
        "format": "json",
        "handlers": {
            "console": {"enabled": True},
            "file": {
                "enabled": False,
                "path": str(tmp_path / "logs" / "system.jsonl"),
                "max_bytes": 1024,
                "backup_count": 1,
            },
        },
    }


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestMaskSecrets:
    """Tests for the secret-masking processor."""

    def test_masks_top_level_keys(self):
        """Should mask sensitive keys regardless of case."""
        event = {"event": "minting", "Private_Key": "0xabc", "mission_id": "m-1"}

        result = mask_secrets(None, "info", event)

        assert result["Private_Key"] == "***"
        assert result["mission_id"] == "m-1"

    def test_masks_inside_extra(self):
        """Should mask sensitive keys one level down (the extra dict)."""
        event = {"event": "auth", "extra": {"init_data": "user=...", "user_id": "u-1"}}

        result = mask_secrets(None, "info", event)

        assert result["extra"] == {"init_data": "***", "user_id": "u-1"}

    def test_leaves_empty_values(self):
        """Should not replace empty secrets, so missing keys stay visible."""
        result = mask_secrets(None, "info", {"api_key": ""})
        assert result["api_key"] == ""


class TestLogWithSource:
    """Tests for explicit source logging."""

    def test_known_source(self):
        logger = MagicMock()
        log_with_source(logger, "webhooks", "info", "Webhook received", service="cloverly")
        logger.info.assert_called_once_with("Webhook received", source="webhooks", service="cloverly")

    def test_unknown_source_is_normalised(self):
        """Should record unrecognised sources as unknown."""
        logger = MagicMock()
        log_with_source(logger, "carrier-pigeon", "warning", "odd")
        logger.warning.assert_called_once_with("odd", source="unknown")

    def test_invalid_level(self):
        """Should raise AttributeError for a level the logger lacks."""
        with pytest.raises(AttributeError):
            log_with_source(MagicMock(spec=["info"]), "tasks", "shout", "x")

    def test_domain_sources_are_valid(self):
        assert {"telegram", "tasks", "events", "webhooks", "blockchain"} <= VALID_SOURCES


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self, logging_config):
        """Should install a single stdout handler at the configured level."""
        with patch.object(logging_module, "_get_logging_config", return_value=logging_config):
            setup_logging()

        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_overrides_take_precedence(self, logging_config):
        with patch.object(logging_module, "_get_logging_config", return_value=logging_config):
            setup_logging(level="debug", format_type="console")

        assert logging.getLogger().level == logging.DEBUG

    def test_file_handler(self, logging_config, tmp_path):
        """Should create the log directory and a rotating JSONL handler."""
        with patch.object(logging_module, "_get_logging_config", return_value=logging_config), \
             patch.object(logging_module, "find_project_root", return_value=tmp_path):
            setup_logging(enable_console=False, enable_file_logging=True)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RotatingFileHandler)
        assert (tmp_path / "logs").is_dir()

    def test_quiets_noisy_libraries(self, logging_config):
        with patch.object(logging_module, "_get_logging_config", return_value=logging_config):
            setup_logging()

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


def test_get_logger_returns_bound_logger():
    logger = get_logger("modules.backend.services.mission")
    assert hasattr(logger, "info")
