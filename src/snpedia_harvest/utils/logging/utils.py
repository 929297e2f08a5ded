# ABOUTME: Logger utilities with context binding and operation tracking decorators
# ABOUTME: Provides get_logger plus decorators for extraction steps and SNPedia API calls

import functools
import inspect
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance with automatic module detection.

    Args:
        name: Logger name, auto-detected from caller if None

    Returns:
        Configured structlog logger instance
    """
    if name is None:
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")

    return structlog.get_logger(name or "snpedia_harvest")


def generate_operation_id() -> str:
    """Generate a unique operation ID for tracking requests."""
    return str(uuid.uuid4())[:8]


def _result_info(result: Any) -> dict[str, Any]:
    """Summarise an extraction result for the completion log line."""
    info: dict[str, Any] = {}
    if isinstance(result, (list, tuple, dict)):
        info["result_count"] = len(result)
    for attr in ("genotypes", "citations", "external_links"):
        value = getattr(result, attr, None)
        if isinstance(value, (list, tuple)):
            info[f"{attr}_count"] = len(value)
    return info


def log_extraction_step(step_name: str) -> Callable[[F], F]:
    """Decorator to log a synchronous extraction pipeline step.

    The variant id is taken from a ``variant_id`` keyword argument when present.
    Only debug-level lines are emitted on success; the extraction core is called
    once per page and should not flood the logs.

    Args:
        step_name: Name of the extraction step

    Returns:
        Decorated function with extraction step logging
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            bound_logger = logger.bind(
                step=step_name, variant_id=kwargs.get("variant_id"), pipeline="variant_extraction"
            )

            bound_logger.debug(f"Starting extraction step: {step_name}")
            start_time = time.time()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                bound_logger.error(
                    f"Failed extraction step: {step_name}",
                    duration_seconds=round(time.time() - start_time, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                    success=False,
                )
                raise

            bound_logger.debug(
                f"Completed extraction step: {step_name}",
                duration_seconds=round(time.time() - start_time, 3),
                success=True,
                **_result_info(result),
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


def log_api_call(api_name: str, **context) -> Callable[[F], F]:
    """Decorator to log async API calls with timing and outcome.

    Args:
        api_name: Name of the API being called
        **context: Additional context for the API call

    Returns:
        Decorated function with API call logging
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            call_id = generate_operation_id()

            # First plain string argument is the page title / variant id for these calls
            target = next((arg for arg in args if isinstance(arg, str)), None)

            bound_logger = logger.bind(api_name=api_name, call_id=call_id, target=target, **context)

            bound_logger.debug(f"API call to {api_name}")
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                bound_logger.error(
                    f"API call to {api_name} failed",
                    duration_seconds=round(time.time() - start_time, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                    success=False,
                )
                raise

            bound_logger.info(
                f"API call to {api_name} succeeded",
                duration_seconds=round(time.time() - start_time, 3),
                success=True,
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


class LogContext:
    """Context manager for binding logger context."""

    def __init__(self, logger: structlog.stdlib.BoundLogger, **context):
        self.logger = logger
        self.context = context
        self.bound_logger = None

    def __enter__(self) -> structlog.stdlib.BoundLogger:
        self.bound_logger = self.logger.bind(**self.context)
        return self.bound_logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and self.bound_logger is not None:
            self.bound_logger.error("Context operation failed", error=str(exc_val), error_type=exc_type.__name__)


def with_variant_context(variant_id: str) -> LogContext:
    """Create a logging context for operations on one variant.

    Args:
        variant_id: Variant id (rs/I id) for context binding

    Returns:
        LogContext manager with variant context
    """
    logger = get_logger()
    return LogContext(logger, variant_id=variant_id, entity_type="variant")


def with_pipeline_context(pipeline_name: str, **context) -> LogContext:
    """Create a logging context for pipeline operations.

    Args:
        pipeline_name: Name of the pipeline
        **context: Additional context to bind

    Returns:
        LogContext manager with pipeline context
    """
    logger = get_logger()
    operation_id = generate_operation_id()
    return LogContext(logger, pipeline=pipeline_name, operation_id=operation_id, **context)
