"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets TESTING so no .env file is read, points the identity provider at a
dummy URL and removes any Redis configuration so limiters use the
per-process store.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test-key")
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_TOKEN", None)

from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from session_guard.adapters.supabase.base import (  # noqa: E402
    AbstractIdentityProvider,
    AbstractObjectStorage,
    AbstractProfileStore,
    AuthSession,
    AuthUser,
    MfaEnrollment,
    MfaFactor,
)
from session_guard.adapters.supabase.factory import Collaborators  # noqa: E402
from session_guard.core.app_factory import create_app  # noqa: E402
from session_guard.core.config import settings  # noqa: E402
from session_guard.core.errors import AuthenticationAppError, UpstreamAppError  # noqa: E402
from session_guard.services.policies import build_rate_limits  # noqa: E402

VALID_TOKEN = "valid-access-token-0123456789"
TEST_USER = AuthUser(id="user-123", email="user@example.com", created_at="2024-01-01T00:00:00Z")


class FakeIdentityProvider(AbstractIdentityProvider):
    """In-memory identity provider keyed by access token."""

    def __init__(self) -> None:
        self.sessions: dict[str, AuthUser] = {}
        self.passwords: dict[str, str] = {}
        self.signed_out: list[str] = []
        self.reset_requests: list[tuple[str, str | None]] = []
        self.factors: dict[str, MfaFactor] = {}
        self.get_user_error: Exception | None = None

    def add_session(self, token: str, user: AuthUser = TEST_USER) -> None:
        self.sessions[token] = user

    async def sign_up(self, email: str, password: str, display_name: str) -> AuthUser:
        user = AuthUser(
            id=f"user-{len(self.passwords) + 1}",
            email=email,
            user_metadata={"full_name": display_name},
        )
        self.passwords[email] = password
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        if self.passwords.get(email) != password:
            raise AuthenticationAppError(
                code="invalid_credentials",
                message="Invalid email or password",
            )
        user = AuthUser(id=f"id-{len(self.sessions) + 1}", email=email)
        token = f"session-token-{len(self.sessions) + 1}"
        self.sessions[token] = user
        return AuthSession(access_token=token, user=user, refresh_token="refresh", expires_at=1)

    async def get_user(self, access_token: str) -> AuthUser | None:
        if self.get_user_error is not None:
            raise self.get_user_error
        return self.sessions.get(access_token)

    async def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)
        self.sessions.pop(access_token, None)

    async def request_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        self.reset_requests.append((email, redirect_to))

    async def enroll_factor(self, access_token: str, friendly_name: str | None = None) -> MfaEnrollment:
        factor_id = f"factor-{len(self.factors) + 1}"
        self.factors[factor_id] = MfaFactor(
            id=factor_id, factor_type="totp", status="unverified", friendly_name=friendly_name
        )
        return MfaEnrollment(id=factor_id, factor_type="totp", qr_code="<svg/>", secret="S3CR3T")

    async def verify_factor(self, access_token: str, factor_id: str, code: str) -> AuthSession:
        factor = self.factors[factor_id]
        self.factors[factor_id] = MfaFactor(
            id=factor.id, factor_type=factor.factor_type, status="verified",
            friendly_name=factor.friendly_name,
        )
        return AuthSession(access_token=access_token, user=self.sessions[access_token])

    async def list_factors(self, access_token: str) -> list[MfaFactor]:
        return list(self.factors.values())

    async def unenroll_factor(self, access_token: str, factor_id: str) -> None:
        self.factors.pop(factor_id, None)


class FakeProfileStore(AbstractProfileStore):
    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}
        self.updates: list[dict[str, Any]] = []
        self.fail = False

    async def get_profile(self, access_token: str, user_id: str) -> dict[str, Any]:
        return self.records.get(user_id, {"id": user_id})

    async def update_profile(
        self, access_token: str, user_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        if self.fail:
            raise UpstreamAppError(
                code="profiles_error",
                message="Profile store failed",
                details={"http_status": 500},
            )
        self.updates.append(fields)
        record = {**self.records.get(user_id, {"id": user_id}), **fields}
        self.records[user_id] = record
        return record


class FakeObjectStorage(AbstractObjectStorage):
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}

    async def put_object(self, access_token: str, path: str, data: bytes, content_type: str) -> None:
        self.objects[path] = (data, content_type)

    def get_public_url(self, path: str) -> str:
        return f"https://cdn.test/avatars/{path}"


@pytest.fixture
def identity() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.add_session(VALID_TOKEN)
    return provider


@pytest.fixture
def profiles() -> FakeProfileStore:
    return FakeProfileStore()


@pytest.fixture
def storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def collaborators(identity, profiles, storage) -> Collaborators:
    return Collaborators(identity=identity, profiles=profiles, storage=storage)


@pytest.fixture
def app(collaborators):
    """Fresh app per test so quota state never leaks between tests."""
    return create_app(collaborators=collaborators, rate_limits=build_rate_limits(settings))


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
