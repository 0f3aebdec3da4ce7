"""
Structured logging configuration for the SatuSehat client.

This module provides structured logging using structlog. The library itself
only obtains loggers; applications call configure_logging() once at startup.
"""

import logging
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog


@dataclass
class LoggingConfig:
    """Logging configuration."""

    suppressed_loggers: dict[str, str] = field(
        default_factory=lambda: {
            "aiohttp": "WARNING",
            "asyncio": "WARNING",
            "redis": "WARNING",
        }
    )
    redacted_keys: frozenset[str] = frozenset(
        {
            "access_token",
            "authorization",
            "client_secret",
            "secret_key",
            "public_key",
            "private_key",
        }
    )


# Default logging configuration
_logging_config = LoggingConfig()

REDACTED = "[REDACTED]"


def secret_redactor(extra_keys: Iterable[str] = ()) -> Callable:
    """
    Build a structlog processor that masks the values of sensitive keys.

    Keys match case-insensitively. extra_keys extend the default set.
    """
    keys = _logging_config.redacted_keys | {key.lower() for key in extra_keys}

    def redact(
        logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key in list(event_dict):
            if key.lower() in keys:
                event_dict[key] = REDACTED
        return event_dict

    return redact


# Masks credential and key values
redact_secrets = secret_redactor()


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    redacted_keys: Iterable[str] = (),
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARN, ERROR)
        json_format: If True, output JSON logs; otherwise, use console format
        redacted_keys: Additional event keys whose values are masked,
            e.g. application fields holding patient identifiers
    """
    extra_keys = tuple(redacted_keys)
    redactor = secret_redactor(extra_keys) if extra_keys else redact_secrets

    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Callable] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redactor,
    ]

    if json_format:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    for logger_name, logger_level in _logging_config.suppressed_loggers.items():
        suppressed_level = getattr(logging, logger_level.upper(), logging.WARNING)
        logging.getLogger(logger_name).setLevel(suppressed_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
