"""Logging utilities with JSON formatting, redaction, and request correlation.

This module centralizes logging configuration, including:
- Context-aware request_id propagation via contextvars
- Secret redaction and caller pseudonymization on log records
- JSON formatter for machine-friendly logs
- Configurable stdout/file handlers with rotation support
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from session_guard.core.config import LogSettings, settings

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "[REDACTED]"

# Values under these keys never reach the log output
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "apikey",
    "anon_key",
    "authorization",
    "token",
    "access_token",
    "refresh_token",
    "secret",
    "password",
    "totp_secret",
    "qr_code",
    "cookie",
    "set-cookie",
    "phone",
}

# Values under these keys are replaced by a short stable hash, so a caller can
# be followed across log lines without recording the address or email itself.
PSEUDONYMIZED_KEYS_DEFAULT: set[str] = {
    "identifier",
    "ip",
    "client_ip",
    "email",
}

# LogRecord attributes that are not user-supplied extras
_EXCLUDED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "stack",
}


def set_request_id(request_id: str | None) -> None:
    """Store the current request id in a context variable."""

    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    """Fetch the current request id from context."""

    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear any stored request id from context."""

    _request_id_var.set(None)


def pseudonymize(value: Any) -> str:
    """Return a 16-char sha256 prefix of ``value``."""

    return hashlib.sha256(str(value).encode()).hexdigest()[:16]


class _Scrubber:
    """Applies redaction and pseudonymization rules to arbitrary values."""

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        pseudonymized_keys: Iterable[str] | None = None,
    ) -> None:
        self.sensitive_keys = {k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT)}
        self.pseudonymized_keys = {
            k.lower() for k in (pseudonymized_keys or PSEUDONYMIZED_KEYS_DEFAULT)
        }

    def scrub_field(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in self.sensitive_keys:
            return REDACTED
        if lowered in self.pseudonymized_keys and value is not None:
            return pseudonymize(value)
        return self.scrub_value(value)

    def scrub_value(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: self.scrub_field(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.scrub_value(v) for v in value)
        return value

    def record_extras(self, record: LogRecord) -> dict[str, Any]:
        """Collect user-supplied extras from a record, scrubbed."""

        data: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _EXCLUDED_ATTRS or key.startswith("_"):
                continue
            data[key] = self.scrub_field(key, value)
        return data


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub sensitive fields on the record before any formatter sees it."""

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        pseudonymized_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__()
        self._scrubber = _Scrubber(sensitive_keys, pseudonymized_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "_scrubbed", False):
            return True
        for key, value in self._scrubber.record_extras(record).items():
            setattr(record, key, value)
        record._scrubbed = True
        return True


class JsonFormatter(logging.Formatter):
    """Format LogRecord as one JSON object per line."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        pseudonymized_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self._scrubber = _Scrubber(sensitive_keys, pseudonymized_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        if getattr(record, "_scrubbed", False):
            extras = {
                k: v
                for k, v in record.__dict__.items()
                if k not in _EXCLUDED_ATTRS and not k.startswith("_")
            }
        else:
            extras = self._scrubber.record_extras(record)
        payload.update(extras)

        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct a stdout or (rotating) file handler from configuration."""

    if log_settings.output.lower() == "file":
        file_path = Path(log_settings.file_path or "logs/session_guard.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if log_settings.max_bytes:
            return RotatingFileHandler(
                file_path,
                maxBytes=log_settings.max_bytes,
                backupCount=log_settings.backup_count,
                encoding="utf-8",
            )
        return logging.FileHandler(file_path, encoding="utf-8")

    return logging.StreamHandler(sys.stdout)


def _build_formatter(log_settings: LogSettings) -> logging.Formatter:
    if log_settings.format.lower() == "plain":
        return logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
            defaults={"request_id": "-"},
        )
    return JsonFormatter()


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single scrubbing handler on the root logger.

    Safe to call more than once; previous root handlers are replaced. Uvicorn's
    own loggers stop propagating so access lines are not emitted twice.

    Args:
        log_settings: Log settings; the global ``settings.log`` when omitted.
    """

    log_settings = log_settings or settings.log

    handler = _build_handler(log_settings)
    for log_filter in (RequestIdFilter(), SensitiveDataFilter()):
        handler.addFilter(log_filter)
    handler.setFormatter(_build_formatter(log_settings))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_settings.level.upper(), logging.INFO))

    for name in ("uvicorn", "uvicorn.access"):
        logging.getLogger(name).propagate = False
