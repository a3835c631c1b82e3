"""Interfaces for the identity provider, profile store and object storage.

Routes depend on these abstractions only; the Supabase HTTP clients are one
implementation and tests substitute in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AuthUser:
    """Authenticated principal as reported by the identity provider."""

    id: str
    email: str | None = None
    created_at: str | None = None
    user_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthSession:
    """Tokens issued by a successful sign-in."""

    access_token: str
    user: AuthUser
    refresh_token: str | None = None
    expires_at: int | None = None


@dataclass(frozen=True)
class MfaFactor:
    id: str
    factor_type: str
    status: str
    friendly_name: str | None = None


@dataclass(frozen=True)
class MfaEnrollment:
    """TOTP enrollment material shown to the user once."""

    id: str
    factor_type: str
    qr_code: str | None = None
    secret: str | None = None
    uri: str | None = None


class AbstractIdentityProvider(ABC):
    """Sign-up/sign-in/session operations plus multi-factor management."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, display_name: str) -> AuthUser:
        """Register a new account.

        Raises:
            ValidationAppError: If the provider rejects the registration.
            UpstreamAppError: If the provider fails.
        """
        ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session.

        Raises:
            AuthenticationAppError: If the credentials are rejected.
            UpstreamAppError: If the provider fails.
        """
        ...

    @abstractmethod
    async def get_user(self, access_token: str) -> AuthUser | None:
        """Return the session's user, or None when the token is not valid."""
        ...

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke the session (and its siblings)."""
        ...

    @abstractmethod
    async def request_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        """Send a password reset email."""
        ...

    @abstractmethod
    async def enroll_factor(self, access_token: str, friendly_name: str | None = None) -> MfaEnrollment:
        """Start TOTP enrollment."""
        ...

    @abstractmethod
    async def verify_factor(self, access_token: str, factor_id: str, code: str) -> AuthSession:
        """Challenge and verify a factor with a one-time code."""
        ...

    @abstractmethod
    async def list_factors(self, access_token: str) -> list[MfaFactor]:
        ...

    @abstractmethod
    async def unenroll_factor(self, access_token: str, factor_id: str) -> None:
        ...

    async def aclose(self) -> None:
        return None


class AbstractProfileStore(ABC):
    """Read/update of the ``profiles`` record owned by a user."""

    @abstractmethod
    async def get_profile(self, access_token: str, user_id: str) -> dict[str, Any]:
        """Return the profile record.

        Raises:
            UpstreamAppError: If the record cannot be read.
        """
        ...

    @abstractmethod
    async def update_profile(
        self, access_token: str, user_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply ``fields`` and return the updated record.

        Raises:
            UpstreamAppError: If the update fails.
        """
        ...

    async def aclose(self) -> None:
        return None


class AbstractObjectStorage(ABC):
    """Put objects and build their public URLs."""

    @abstractmethod
    async def put_object(
        self, access_token: str, path: str, data: bytes, content_type: str
    ) -> None:
        """Upload ``data`` under ``path`` without overwriting.

        Raises:
            UpstreamAppError: If the upload fails.
        """
        ...

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        ...

    async def aclose(self) -> None:
        return None
