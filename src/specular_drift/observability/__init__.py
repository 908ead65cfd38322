"""Public observability primitives: JSON-lines logging and structlog routing."""

from specular_drift.observability.logging import (
    LoggingConfig,
    LoggingHandle,
    LogRedactor,
    configure_structlog,
    default_log_redactor,
    get_logger,
    setup_logging,
    setup_structured_logging,
)

__all__ = [
    "LogRedactor",
    "LoggingConfig",
    "LoggingHandle",
    "configure_structlog",
    "default_log_redactor",
    "get_logger",
    "setup_logging",
    "setup_structured_logging",
]
