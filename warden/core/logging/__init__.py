"""
Logging configuration module for structured logging.

This module configures the application's operational logging using structlog:
JSON output in production and human-readable console output for development.

Operational logs are separate from the persistent audit trail, which is
written only through ``SecureLogService``. Neither may carry plaintext codes,
tokens or passwords.
"""

import logging

import structlog

from warden.core.config.settings import settings


def configure_logging(log_level: str = settings.LOG_LEVEL, json_logs: bool = settings.LOG_JSON) -> None:
    """
    Configures the application's logging system.

    Sets up structlog with ISO timestamps, the log level, and either a JSON
    or a console renderer, on top of the standard library logger factory.

    Args:
        log_level: Minimum level passed to the standard library root logger.
        json_logs: Render events as JSON when true.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper(), logging.INFO))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()
