"""
Request context for log correlation.

Every inbound HTTP request gets a request_id; every JSON-RPC call handled
within it is tagged with the network it targets. Uses contextvars so the
values follow each asyncio task (batch calls fan out into separate tasks
that inherit a copy of the request's context).
"""

from contextvars import ContextVar
from typing import Optional
import uuid

__all__ = [
    "set_request_id",
    "get_request_id",
    "generate_request_id",
    "set_correlation_id",
    "get_correlation_id",
    "set_network",
    "get_network",
    "clear_context",
    "get_context_dict",
]

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_network: ContextVar[Optional[str]] = ContextVar("network", default=None)


def generate_request_id() -> str:
    """
    Generate a new request ID.

    Format: req_{16 hex chars}
    """
    return f"req_{uuid.uuid4().hex[:16]}"


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the X-Correlation-ID passed by an upstream service."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_network(network: str) -> None:
    _network.set(network)


def get_network() -> Optional[str]:
    return _network.get()


def clear_context() -> None:
    """Clear all context variables at the end of a request."""
    _request_id.set(None)
    _correlation_id.set(None)
    _network.set(None)


def get_context_dict() -> dict:
    """Get all context variables as dict, for enriching error reports."""
    return {
        "request_id": get_request_id(),
        "correlation_id": get_correlation_id(),
        "network": get_network(),
    }
