"""Tests for the Supabase HTTP adapters against a mocked transport."""

from __future__ import annotations

import json

import httpx
import pytest

from session_guard.adapters.supabase import create_supabase_collaborators
from session_guard.core.config import SupabaseSettings
from session_guard.core.errors import (
    AuthenticationAppError,
    ConfigurationAppError,
    UpstreamAppError,
    ValidationAppError,
)

BASE_URL = "https://project.supabase.test"
USER = {"id": "user-1", "email": "user@example.com", "created_at": "2024-01-01T00:00:00Z"}


def make_collaborators(handler):
    settings = SupabaseSettings(url=BASE_URL, anon_key="anon-key")
    return create_supabase_collaborators(settings, transport=httpx.MockTransport(handler))


def test_factory_fails_fast_without_configuration() -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        create_supabase_collaborators(SupabaseSettings(url=None, anon_key=None))

    assert exc_info.value.code == "supabase_not_configured"


def test_factory_requires_anon_key() -> None:
    with pytest.raises(ConfigurationAppError):
        create_supabase_collaborators(SupabaseSettings(url=BASE_URL, anon_key=None))


@pytest.mark.asyncio
async def test_sign_in_uses_password_grant() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"access_token": "at", "refresh_token": "rt", "expires_at": 99, "user": USER},
        )

    collaborators = make_collaborators(handler)
    session = await collaborators.identity.sign_in("user@example.com", "Secret123")

    assert session.access_token == "at"
    assert session.user.id == "user-1"
    request = seen[0]
    assert request.url.path == "/auth/v1/token"
    assert request.url.params["grant_type"] == "password"
    assert request.headers["apikey"] == "anon-key"
    assert json.loads(request.content) == {"email": "user@example.com", "password": "Secret123"}
    await collaborators.aclose()


@pytest.mark.asyncio
async def test_bad_credentials_become_invalid_credentials() -> None:
    collaborators = make_collaborators(
        lambda request: httpx.Response(400, json={"error": "invalid_grant"})
    )

    with pytest.raises(AuthenticationAppError) as exc_info:
        await collaborators.identity.sign_in("user@example.com", "nope")

    assert exc_info.value.code == "invalid_credentials"


@pytest.mark.asyncio
async def test_get_user_returns_none_for_rejected_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers["authorization"] == "Bearer good":
            return httpx.Response(200, json=USER)
        return httpx.Response(401, json={"msg": "invalid JWT"})

    identity = make_collaborators(handler).identity

    assert (await identity.get_user("good")).email == "user@example.com"
    assert await identity.get_user("expired") is None


@pytest.mark.asyncio
async def test_sign_up_sends_display_name() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"user": USER, "access_token": "at"})

    user = await make_collaborators(handler).identity.sign_up("u@example.com", "Secret123", "Ada")

    assert user.id == "user-1"
    assert bodies[0]["data"] == {"full_name": "Ada"}


@pytest.mark.asyncio
async def test_profile_update_filters_columns_and_targets_row() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-1", "full_name": "Ada"})

    profiles = make_collaborators(handler).profiles
    record = await profiles.update_profile(
        "token", "user-1", {"full_name": "Ada", "phone": None, "role": "admin"}
    )

    assert record["full_name"] == "Ada"
    request = seen[0]
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.user-1"
    assert request.headers["prefer"] == "return=representation"
    assert request.headers["authorization"] == "Bearer token"
    assert json.loads(request.content) == {"full_name": "Ada", "phone": None}


@pytest.mark.asyncio
async def test_profile_server_error_maps_to_upstream_error() -> None:
    profiles = make_collaborators(lambda request: httpx.Response(503)).profiles

    with pytest.raises(UpstreamAppError) as exc_info:
        await profiles.update_profile("token", "user-1", {"full_name": "Ada"})

    assert exc_info.value.code == "profiles_error"
    assert exc_info.value.details == {"http_status": 503}


@pytest.mark.asyncio
async def test_transport_failure_maps_to_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamAppError) as exc_info:
        await make_collaborators(handler).profiles.get_profile("token", "user-1")

    assert exc_info.value.code == "profiles_unavailable"
    assert exc_info.value.details == {"http_status": 502}


@pytest.mark.asyncio
async def test_storage_upload_does_not_overwrite() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Key": "avatars/avatars/u-1.png"})

    storage = make_collaborators(handler).storage
    await storage.put_object("token", "avatars/u-1.png", b"png", "image/png")

    request = seen[0]
    assert request.url.path == "/storage/v1/object/avatars/avatars/u-1.png"
    assert request.headers["x-upsert"] == "false"
    assert request.headers["content-type"] == "image/png"
    assert request.content == b"png"
    assert storage.get_public_url("avatars/u-1.png") == (
        f"{BASE_URL}/storage/v1/object/public/avatars/avatars/u-1.png"
    )


@pytest.mark.asyncio
async def test_storage_rejection_maps_to_validation_error() -> None:
    storage = make_collaborators(
        lambda request: httpx.Response(409, json={"message": "The resource already exists"})
    ).storage

    with pytest.raises(ValidationAppError) as exc_info:
        await storage.put_object("token", "avatars/u-1.png", b"png", "image/png")

    assert exc_info.value.message == "The resource already exists"


@pytest.mark.asyncio
async def test_mfa_enroll_and_verify_flow() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/auth/v1/factors":
            return httpx.Response(
                200,
                json={"id": "f1", "type": "totp", "totp": {"qr_code": "<svg/>", "secret": "S"}},
            )
        if path.endswith("/challenge"):
            return httpx.Response(200, json={"id": "ch1"})
        if path.endswith("/verify"):
            assert json.loads(request.content) == {"challenge_id": "ch1", "code": "123456"}
            return httpx.Response(200, json={"access_token": "aal2", "user": USER})
        return httpx.Response(404)

    identity = make_collaborators(handler).identity

    enrollment = await identity.enroll_factor("token", "phone")
    assert (enrollment.id, enrollment.secret) == ("f1", "S")

    session = await identity.verify_factor("token", "f1", "123456")
    assert session.access_token == "aal2"


@pytest.mark.asyncio
async def test_list_factors_reads_user_record() -> None:
    user = {**USER, "factors": [{"id": "f1", "factor_type": "totp", "status": "verified"}]}
    identity = make_collaborators(lambda request: httpx.Response(200, json=user)).identity

    [factor] = await identity.list_factors("token")

    assert factor.status == "verified"
