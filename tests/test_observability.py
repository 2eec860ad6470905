"""
Tests for observability components.

Tests:
- Request context management
- Error handler and error boundary
- Sentry event filtering
- Request ID validation in the middleware
"""

import asyncio
from unittest.mock import patch

import pytest

from mev_shield.core.context import (
    clear_context,
    generate_request_id,
    get_context_dict,
    get_correlation_id,
    get_network,
    get_request_id,
    set_correlation_id,
    set_network,
    set_request_id,
)
from mev_shield.core.errors import ErrorHandler, _before_send, capture_exception, error_boundary
from mev_shield.middleware.context import _validate_id


class TestRequestContext:
    """Tests for request context management."""

    def test_generate_request_id_format(self):
        """Test request ID format: req_{16 hex chars}."""
        request_id = generate_request_id()
        assert request_id.startswith("req_")
        assert len(request_id) == 20

    def test_request_id_context(self):
        clear_context()
        assert get_request_id() is None

        set_request_id("req_test123")
        assert get_request_id() == "req_test123"

        clear_context()
        assert get_request_id() is None

    def test_correlation_id_and_network(self):
        clear_context()
        set_correlation_id("corr_1")
        set_network("sepolia")

        assert get_correlation_id() == "corr_1"
        assert get_network() == "sepolia"

        clear_context()
        assert get_network() is None

    def test_get_context_dict(self):
        clear_context()
        set_request_id("req_abc")
        set_network("mainnet")

        assert get_context_dict() == {
            "request_id": "req_abc",
            "correlation_id": None,
            "network": "mainnet",
        }
        clear_context()


class TestErrorHandler:
    """Tests for ErrorHandler and error_boundary."""

    def test_error_handler_suppresses_exception(self):
        with patch("mev_shield.core.errors.capture_exception") as mock_capture:
            with ErrorHandler("record_relay_attempt") as handler:
                raise ValueError("kv down")

        assert isinstance(handler.error, ValueError)
        mock_capture.assert_called_once()
        context = mock_capture.call_args.kwargs["context"]
        assert context["operation"] == "record_relay_attempt"

    def test_error_handler_reraises_when_configured(self):
        with patch("mev_shield.core.errors.capture_exception"):
            with pytest.raises(ValueError):
                with ErrorHandler("forward_read", reraise=True):
                    raise ValueError("test error")

    def test_error_handler_no_exception(self):
        with ErrorHandler("save_submission_status") as handler:
            result = "success"

        assert result == "success"
        assert handler.error is None
        assert handler.event_id is None

    def test_capture_disabled(self):
        with patch("mev_shield.core.errors.capture_exception") as mock_capture:
            with ErrorHandler("quiet", capture=False):
                raise RuntimeError("ignored")

        mock_capture.assert_not_called()

    def test_cancellation_propagates(self):
        with pytest.raises(asyncio.CancelledError):
            with ErrorHandler("record_relay_attempt"):
                raise asyncio.CancelledError()

    def test_error_boundary_passes_context(self):
        with patch("mev_shield.core.errors.capture_exception") as mock_capture:
            with error_boundary("save_submission_status", via="eden") as handler:
                raise KeyError("tx")

        assert isinstance(handler.error, KeyError)
        context = mock_capture.call_args.kwargs["context"]
        assert context == {"operation": "save_submission_status", "via": "eden"}
        assert mock_capture.call_args.kwargs["fingerprint"] == ["save_submission_status", "KeyError"]

    def test_capture_exception_without_sentry(self):
        """Logs only; no event id when Sentry is not initialized."""
        event_id = capture_exception(ValueError("test"), context={"method": "eth_call"})
        assert event_id is None


class TestSentryFilter:
    """Tests for _before_send."""

    def test_drops_health_probe_events(self):
        event = {"request": {"url": "https://shield.test/health"}}
        assert _before_send(event, {}) is None

    def test_tags_request_id(self):
        clear_context()
        set_request_id("req_0123456789abcdef")

        event = _before_send({"request": {"url": "https://shield.test/rpc"}}, {})

        assert event["tags"]["request_id"] == "req_0123456789abcdef"
        clear_context()


class TestRequestIdValidation:
    """Tests for _validate_id."""

    @pytest.mark.parametrize("value", ["req_abc", "wallet-42", "A" * 64])
    def test_accepts_safe_ids(self, value):
        assert _validate_id(value) == value

    @pytest.mark.parametrize("value", [None, "", "A" * 65, "has space", "new\nline", "semi;colon"])
    def test_rejects_unsafe_ids(self, value):
        assert _validate_id(value) is None
