# ABOUTME: Tests for logging configuration module
# ABOUTME: Validates dual-mode setup, third-party suppression and structlog forwarding into loguru

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from loguru import logger

from snpedia_harvest.utils.logging import get_logger, with_variant_context
from snpedia_harvest.utils.logging.config import (
    QUIET_LOGGERS,
    LoggingMode,
    configure_logging,
    detect_logging_mode,
    get_logging_status,
)


class TestDetectLoggingMode:
    """Test logging mode detection logic."""

    def test_detect_mode_from_env(self):
        with patch.dict(os.environ, {"SNPEDIA_HARVEST_LOG_MODE": "production"}):
            assert detect_logging_mode() == LoggingMode.PRODUCTION
        with patch.dict(os.environ, {"SNPEDIA_HARVEST_LOG_MODE": "Interactive"}):
            assert detect_logging_mode() == LoggingMode.INTERACTIVE

    def test_detect_mode_from_env_invalid(self):
        with (
            patch.dict(os.environ, {"SNPEDIA_HARVEST_LOG_MODE": "invalid"}),
            patch("sys.stdout.isatty", return_value=True),
        ):
            assert detect_logging_mode() == LoggingMode.INTERACTIVE

    def test_detect_mode_from_tty_production(self):
        with patch.dict(os.environ, {}, clear=True), patch("sys.stdout.isatty", return_value=False):
            assert detect_logging_mode() == LoggingMode.PRODUCTION


class TestConfigureLogging:
    """Test logging configuration functionality."""

    def teardown_method(self):
        for logger_name in ["", *QUIET_LOGGERS, "py.warnings"]:
            std_logger = logging.getLogger(logger_name)
            std_logger.setLevel(logging.NOTSET)
        logging.captureWarnings(False)
        logger.remove()

    def test_configure_interactive_mode(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        configure_logging(mode=LoggingMode.INTERACTIVE, log_level="INFO")

        assert Path("logs").exists()
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_configure_custom_log_level(self):
        configure_logging(mode=LoggingMode.PRODUCTION, log_level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_structlog_events_reach_loguru_sinks(self):
        configure_logging(mode=LoggingMode.PRODUCTION, log_level="DEBUG")
        captured = []
        logger.add(lambda message: captured.append(message.record), level="DEBUG")

        get_logger("tests.logging").info("Variant stored", variant_id="rs7412", genotype_count=3)

        (record,) = captured
        assert record["message"] == "Variant stored"
        assert record["level"].name == "INFO"
        assert record["extra"]["variant_id"] == "rs7412"
        assert record["extra"]["genotype_count"] == 3

    def test_context_manager_binds_variant(self):
        configure_logging(mode=LoggingMode.PRODUCTION, log_level="DEBUG")
        captured = []
        logger.add(lambda message: captured.append(message.record), level="DEBUG")

        with pytest.raises(RuntimeError):
            with with_variant_context("rs7412") as bound:
                bound.warning("About to fail")
                raise RuntimeError("boom")

        assert [r["level"].name for r in captured] == ["WARNING", "ERROR"]
        assert all(r["extra"]["variant_id"] == "rs7412" for r in captured)
        assert captured[1]["extra"]["error_type"] == "RuntimeError"


class TestGetLoggingStatus:
    """Test logging status reporting."""

    def test_get_status_interactive_mode(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        Path("logs").mkdir()

        with patch("snpedia_harvest.utils.logging.config.detect_logging_mode", return_value=LoggingMode.INTERACTIVE):
            status = get_logging_status()

        assert status["mode"] == LoggingMode.INTERACTIVE
        assert status["log_directory"] is not None
        assert status["log_files"]["main"].endswith("snpedia-harvest.log")
        assert "httpx" in status["third_party_suppressed"]

    def test_get_status_production_mode(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with patch("snpedia_harvest.utils.logging.config.detect_logging_mode", return_value=LoggingMode.PRODUCTION):
            status = get_logging_status()

        assert status["log_directory"] is None
        assert status["log_files"] == {"main": None, "json": None, "errors": None}
