"""
Structured logging configuration using structlog.

JSON lines in production (one event per relay attempt, cascade and call),
human-readable console output for development.

Usage:
    from mev_shield.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("relay_attempt", endpoint="flashbots", succeeded=True, latency_ms=212.4)

Output in production (JSON):
    {"event": "relay_attempt", "endpoint": "flashbots", "succeeded": true,
     "latency_ms": 212.4, "timestamp": "2024-01-01T12:00:00Z", "level": "info"}

Output in development:
    2024-01-01 12:00:00 [info     ] relay_attempt   endpoint=flashbots succeeded=True latency_ms=212.4
"""

import logging
import os
import sys
from typing import Any

import structlog

IS_PRODUCTION = os.getenv("RAILWAY_ENVIRONMENT") is not None
IS_TEST = "pytest" in sys.modules


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog with processors for the current environment."""

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if IS_PRODUCTION:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=not IS_TEST),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging (uvicorn, sqlalchemy) to stdout as well
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


# Configure on import
configure_logging()
