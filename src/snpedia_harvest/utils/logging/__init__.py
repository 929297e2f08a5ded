# ABOUTME: Logging configuration and structured logging helpers
# ABOUTME: Provides loguru sink setup and structlog loggers for the extraction pipeline

from .config import LoggingMode, configure_logging, detect_logging_mode, get_logging_status
from .utils import (
    get_logger,
    log_api_call,
    log_extraction_step,
    with_pipeline_context,
    with_variant_context,
)

__all__ = [
    # Configuration
    "LoggingMode",
    "configure_logging",
    "detect_logging_mode",
    "get_logging_status",
    # Utilities
    "get_logger",
    "log_api_call",
    "log_extraction_step",
    "with_pipeline_context",
    "with_variant_context",
]
