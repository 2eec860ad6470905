"""
Unified error capture with optional Sentry reporting.

Provides:
- Structured logging of every captured exception (always)
- Sentry forwarding when a DSN is configured
- ErrorHandler / error_boundary for best-effort side steps whose failure
  must not change the outcome of the surrounding call

Usage:
    capture_exception(exc, context={"endpoint": "flashbots"})

    with error_boundary("save_submission_status", status_id=status_id):
        await status_store.save(...)
"""

from typing import Optional, Any, Dict
from datetime import datetime, timezone
from contextlib import contextmanager
import logging
import os

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
import structlog

from mev_shield.core.context import get_context_dict, get_request_id

logger = structlog.get_logger(__name__)

__all__ = [
    "init_sentry",
    "capture_exception",
    "ErrorHandler",
    "error_boundary",
    "is_sentry_enabled",
]

_sentry_initialized: bool = False


def init_sentry(
    dsn: str,
    environment: str = "production",
    traces_sample_rate: float = 0.0,
    release: Optional[str] = None,
) -> bool:
    """
    Initialize Sentry SDK for error tracking.

    Returns:
        True if initialization succeeded, False if disabled or failed
    """
    global _sentry_initialized

    if not dsn:
        logger.info("Sentry disabled (no DSN provided)")
        return False

    if not release:
        release = os.environ.get("RAILWAY_GIT_COMMIT_SHA")

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
            release=release,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR,
                ),
            ],
            ignore_errors=[
                KeyboardInterrupt,
                SystemExit,
            ],
            before_send=_before_send,
        )
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))
        return False

    _sentry_initialized = True
    logger.info("Sentry initialized", environment=environment, release=release)
    return True


def _before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Tag events with the request id and drop liveness probe noise."""
    if "request" in event:
        url = event["request"].get("url", "")
        if url.rstrip("/").endswith("/health"):
            return None

    request_id = get_request_id()
    if request_id:
        event.setdefault("tags", {})["request_id"] = request_id

    return event


def is_sentry_enabled() -> bool:
    return _sentry_initialized


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
    fingerprint: Optional[list[str]] = None,
) -> Optional[str]:
    """
    Capture an exception with structured logging and Sentry.

    Args:
        exc: Exception to capture
        context: Additional context dict (e.g., {"method": "eth_call"})
        level: Severity level
        fingerprint: Custom grouping fingerprint for Sentry

    Returns:
        Sentry event ID or None if not sent
    """
    enriched_context = {
        **get_context_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error_type": type(exc).__name__,
        **(context or {}),
    }

    logger.error(
        "Exception captured",
        exc_info=exc,
        **enriched_context,
    )

    if not _sentry_initialized:
        return None

    try:
        with sentry_sdk.new_scope() as scope:
            for key, value in enriched_context.items():
                if value is not None:
                    scope.set_extra(key, value)
            if fingerprint:
                scope.fingerprint = fingerprint
            scope.level = level
            return sentry_sdk.capture_exception(exc)
    except Exception as e:
        logger.warning("Failed to send exception to Sentry", error=str(e))
    return None


class ErrorHandler:
    """
    Context manager that captures an exception and (by default) suppresses it.

    Usage:
        with ErrorHandler("save_submission_status", context={"via": "eden"}):
            ...

        with ErrorHandler("forward_read", reraise=True):
            ...
    """

    def __init__(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        capture: bool = True,
        reraise: bool = False,
        fingerprint: Optional[list[str]] = None,
    ):
        self.operation = operation
        self.context = context or {}
        self.capture = capture
        self.reraise = reraise
        self.fingerprint = fingerprint or [operation]
        self.event_id: Optional[str] = None
        self.error: Optional[BaseException] = None

    def __enter__(self) -> "ErrorHandler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None:
            return False
        if not isinstance(exc_val, Exception):
            # CancelledError and friends always propagate
            return False

        self.error = exc_val
        if self.capture:
            self.event_id = capture_exception(
                exc_val,
                context={
                    "operation": self.operation,
                    **self.context,
                },
                fingerprint=self.fingerprint + [type(exc_val).__name__],
            )
        return not self.reraise


@contextmanager
def error_boundary(operation: str, **context):
    """
    Capture and suppress errors from a best-effort step.

    Usage:
        with error_boundary("save_submission_status", via=endpoint):
            ...
    """
    handler = ErrorHandler(operation, context=context, capture=True, reraise=False)
    with handler:
        yield handler
