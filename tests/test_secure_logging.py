"""Tests for log masking and formatting."""

import json
import logging

from portfolio_api.core.logging_config import (
    ContextFilter,
    HumanFormatter,
    JsonFormatter,
    bind_log_context,
    current_log_context,
    reset_log_context,
)
from portfolio_api.core.secure_logging import mask_api_key, mask_email


class TestMaskEmail:
    """Tests for mask_email function."""

    def test_keeps_domain(self):
        assert mask_email("alice@example.com") == "al***@example.com"

    def test_short_local_part(self):
        assert mask_email("a@example.com") == "a***@example.com"

    def test_none_and_garbage_fully_masked(self):
        assert mask_email(None) == "***"
        assert mask_email("") == "***"
        assert mask_email("not-an-email") == "***"


class TestMaskApiKey:
    """Tests for mask_api_key function."""

    def test_masks_long_key(self):
        """Should show first 4 chars and mask the rest."""
        assert mask_api_key("abc123xyz789") == "abc1********"

    def test_short_key_fully_masked(self):
        assert mask_api_key("abcd") == "****"

    def test_none_returns_masked(self):
        assert mask_api_key(None) == "****"


def _record(msg="Transaction recorded", **extra):
    record = logging.LogRecord(
        name="portfolio_api.services.transaction_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_json_includes_extra_fields(self):
        line = JsonFormatter().format(_record(symbol="BTC", quantity="2"))

        payload = json.loads(line)
        assert payload["level"] == "INFO"
        assert payload["message"] == "Transaction recorded"
        assert payload["logger"] == "portfolio_api.services.transaction_service"
        assert payload["symbol"] == "BTC"
        assert payload["quantity"] == "2"

    def test_json_stringifies_unserializable_values(self):
        payload = json.loads(JsonFormatter().format(_record(when=object())))

        assert isinstance(payload["when"], str)

    def test_human_strips_package_prefix(self):
        line = HumanFormatter().format(_record(symbol="BTC"))

        assert "[services.transaction_service] Transaction recorded" in line
        assert "(symbol=BTC)" in line


class TestLogContext:

    def test_bound_fields_added_to_records(self):
        token = bind_log_context(request_id="req-1", user_id="user-a")
        try:
            record = _record()
            ContextFilter().filter(record)
        finally:
            reset_log_context(token)

        assert record.request_id == "req-1"
        assert record.user_id == "user-a"
        assert "request_id" not in current_log_context()

    def test_explicit_extra_wins_over_bound_field(self):
        token = bind_log_context(user_id="user-a")
        try:
            record = _record(user_id="user-b")
            ContextFilter().filter(record)
        finally:
            reset_log_context(token)

        assert record.user_id == "user-b"

    def test_nested_binding_merges_and_unwinds(self):
        outer = bind_log_context(request_id="req-1")
        inner = bind_log_context(user_id="user-a")

        assert current_log_context() == {"request_id": "req-1", "user_id": "user-a"}

        reset_log_context(inner)
        assert current_log_context() == {"request_id": "req-1"}
        reset_log_context(outer)
        assert current_log_context() == {}

    def test_json_line_carries_bound_fields(self):
        token = bind_log_context(request_id="req-1")
        try:
            record = _record(symbol="BTC")
            ContextFilter().filter(record)
        finally:
            reset_log_context(token)

        payload = json.loads(JsonFormatter().format(record))
        assert payload["request_id"] == "req-1"
        assert payload["symbol"] == "BTC"

    def test_human_line_has_no_terminal_escapes(self):
        line = HumanFormatter().format(_record())

        assert "\033[" not in line
        assert line.split()[2] == "INFO"
