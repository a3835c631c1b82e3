"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from session_guard.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    pseudonymize,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to a scrubbing JSON handler; yields (logger, stream)."""

    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()


def test_sensitive_filter_redacts_credentials(capture):
    logger, stream = capture

    logger.info(
        "auth_event",
        extra={
            "access_token": "eyJhbGciOi.secret",
            "password": "Hunter22",
            "apikey": "anon-key-value",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "eyJhbGciOi.secret" not in output
    assert "Hunter22" not in output
    assert "anon-key-value" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_caller_identifiers_are_pseudonymized(capture):
    logger, stream = capture

    logger.info(
        "activity.login",
        extra={"ip": "203.0.113.5", "email": "user@example.com", "user_id": "user-1"},
    )

    payload = json.loads(stream.getvalue())

    assert payload["ip"] == pseudonymize("203.0.113.5")
    assert payload["email"] == pseudonymize("user@example.com")
    assert "203.0.113.5" not in stream.getvalue()
    # user ids are opaque already and stay readable
    assert payload["user_id"] == "user-1"


def test_sensitive_filter_allows_safe_fields(capture):
    logger, stream = capture

    logger.info(
        "rate_limit.allowed",
        extra={
            "request_id": "req-123",
            "policy": "profile",
            "remaining": 9,
            "backend": "memory",
        },
    )

    output = stream.getvalue()

    assert "req-123" in output
    assert "profile" in output
    assert '"remaining": 9' in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts(capture):
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "authorization": "Bearer secret-token",
                "user-agent": "pytest",
            },
            "metadata": {"factor_id": "factor-1", "secret": "TOTPSECRET"},
        },
    )

    output = stream.getvalue()

    assert "secret-token" not in output
    assert "TOTPSECRET" not in output
    assert "pytest" in output
    assert "factor-1" in output


def test_values_are_hashed_once_when_filter_and_formatter_both_scrub(capture):
    logger, stream = capture

    logger.info("event", extra={"identifier": "1.2.3.4"})

    assert json.loads(stream.getvalue())["identifier"] == pseudonymize("1.2.3.4")


def test_formatter_scrubs_without_filter():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "event", None, None)
    record.password = "plain"
    record.ip = "10.0.0.1"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["password"] == "[REDACTED]"
    assert payload["ip"] == pseudonymize("10.0.0.1")


def test_request_id_from_context_is_included(capture):
    logger, stream = capture
    set_request_id("ctx-req-1")
    try:
        logger.info("event")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "ctx-req-1"
