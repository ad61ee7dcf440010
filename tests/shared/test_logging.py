"""
Unit tests for structured logging helpers.
"""

from unittest.mock import MagicMock

import pytest
import structlog

from shared.logging import (
    add_correlation_context,
    clear_context,
    configure_logging,
    log_auth,
    log_request,
    mask_sensitive_fields,
    set_request_id,
    set_tool_context,
)


TOKEN = "Zx9Qw8Er7Ty6Ui5Op4As3Df2"


@pytest.fixture(autouse=True)
def reset_context():
    yield
    clear_context()
    structlog.reset_defaults()


class TestProcessors:
    """Test cases for the custom structlog processors."""

    def test_sensitive_keys_are_masked(self):
        event = mask_sensitive_fields(None, "info", {
            "event": "calling upstream",
            "authorization": f"Bearer {TOKEN}",
            "token": TOKEN,
        })

        assert event["authorization"] == "Zx9Q************3Df2"
        assert event["token"] == "Zx9Q************3Df2"
        assert event["event"] == "calling upstream"

    def test_bearer_in_message_is_masked(self):
        event = mask_sensitive_fields(None, "info", {"event": f"header was Bearer {TOKEN}"})
        assert TOKEN not in event["event"]

    def test_non_string_values_untouched(self):
        event = mask_sensitive_fields(None, "info", {"event": "x", "attempts": 3, "token": None})
        assert event["attempts"] == 3
        assert event["token"] is None

    def test_correlation_context(self):
        set_request_id("req-1")
        set_tool_context("get_usage")

        event = add_correlation_context(None, "info", {"event": "x"})

        assert event["request_id"] == "req-1"
        assert event["tool_name"] == "get_usage"

    def test_cleared_context_is_omitted(self):
        set_request_id("req-1")
        clear_context()

        assert add_correlation_context(None, "info", {"event": "x"}) == {"event": "x"}

    def test_setting_no_tool_clears_previous_tool(self):
        set_tool_context("get_usage")
        set_tool_context(None)

        assert "tool_name" not in add_correlation_context(None, "info", {"event": "x"})

    def test_set_request_id_generates_one(self):
        assert len(set_request_id()) == 36


class TestConfigureLogging:
    """Test cases for configure_logging."""

    @pytest.mark.parametrize("log_format", ["json", "text"])
    def test_token_masking_processor_installed(self, log_format):
        configure_logging("connect-test", "debug", log_format=log_format)
        processors = structlog.get_config()["processors"]
        assert mask_sensitive_fields in processors

    def test_token_masking_can_be_disabled(self):
        configure_logging("connect-test", "info", enable_token_masking=False)
        assert mask_sensitive_fields not in structlog.get_config()["processors"]

    def test_renderer_follows_format(self):
        configure_logging("connect-test", "warn", log_format="json")
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

        configure_logging("connect-test", "warn", log_format="text")
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)


class TestLogHelpers:
    """Test cases for log_request and log_auth."""

    def test_log_request_success(self):
        logger = MagicMock()
        log_request(logger, "GET", "/api/customers", 12.4, status_code=200)

        logger.info.assert_called_once_with(
            "GET /api/customers completed in 12ms", duration_ms=12.4, status_code=200
        )

    def test_log_request_failure(self):
        logger = MagicMock()
        log_request(logger, "GET", "/api/customers", 30000, error=TimeoutError("timed out"))

        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["error"] == "timed out"

    def test_log_auth_levels(self):
        logger = MagicMock()

        log_auth(logger, "success", identifier="a")
        log_auth(logger, "failure", identifier="a")
        log_auth(logger, "rate_limited", identifier="a")

        logger.info.assert_called_once_with("Authentication successful", identifier="a")
        assert [c.args[0] for c in logger.warning.call_args_list] == [
            "Authentication failed",
            "Authentication rate limited",
        ]
