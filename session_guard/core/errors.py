"""Application error types.

Adapters and services raise these; the exception handlers turn each class
into an HTTP status and a JSON error body.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypedDict

if TYPE_CHECKING:
    from session_guard.adapters.rate_limit.base import RateLimitDecision


class ErrorDetails(TypedDict, total=False):
    """Optional error context; each error sets only the keys it needs."""

    http_status: int
    backend: str
    policy: str
    fields: list[dict[str, Any]]
    max_bytes: int
    content_type: str


@dataclass
class AppError(Exception):
    """Base class for every error the API reports on purpose.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured context; sent to clients only for 4xx.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # str(error) shows the message
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails validation."""


class ConfigurationAppError(AppError):
    """Raised at startup when required configuration is missing."""


class AuthenticationAppError(AppError):
    """Raised when authentication fails (missing/invalid session or credentials)."""


class UpstreamAppError(AppError):
    """Raised when the identity provider, profile store or object storage fails."""


class RateLimitBackendError(AppError):
    """Raised when the shared rate limit store cannot be reached."""


class RateLimitExceededError(AppError):
    """Raised when a caller has exhausted the quota of a policy."""

    def __init__(self, decision: "RateLimitDecision", *, policy: str | None = None) -> None:
        super().__init__(
            code="rate_limited",
            message="Too many requests. Please try again later.",
            details={"policy": policy} if policy else None,
        )
        self.decision = decision
