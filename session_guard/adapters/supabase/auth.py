"""Identity provider client for the Supabase auth (GoTrue) REST API."""

from __future__ import annotations

from typing import Any

from session_guard.adapters.supabase.base import (
    AbstractIdentityProvider,
    AuthSession,
    AuthUser,
    MfaEnrollment,
    MfaFactor,
)
from session_guard.adapters.supabase.http import SupabaseHTTP
from session_guard.core.errors import AuthenticationAppError, ValidationAppError


def _to_user(payload: dict[str, Any]) -> AuthUser:
    return AuthUser(
        id=payload["id"],
        email=payload.get("email"),
        created_at=payload.get("created_at"),
        user_metadata=payload.get("user_metadata") or {},
    )


def _to_session(payload: dict[str, Any]) -> AuthSession:
    return AuthSession(
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
        expires_at=payload.get("expires_at"),
        user=_to_user(payload["user"]),
    )


class SupabaseAuthClient(SupabaseHTTP, AbstractIdentityProvider):
    """GoTrue endpoints under ``/auth/v1``."""

    service = "auth"

    async def sign_up(self, email: str, password: str, display_name: str) -> AuthUser:
        response = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": {"full_name": display_name}},
        )
        payload = response.json()
        # Auto-confirmed projects return a session wrapping the user
        return _to_user(payload.get("user") or payload)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = await self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except (AuthenticationAppError, ValidationAppError) as exc:
            # GoTrue answers 400 invalid_grant for bad credentials
            raise AuthenticationAppError(
                code="invalid_credentials",
                message="Invalid email or password",
            ) from exc
        return _to_session(response.json())

    async def get_user(self, access_token: str) -> AuthUser | None:
        try:
            response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        except AuthenticationAppError:
            return None
        return _to_user(response.json())

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token)

    async def request_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request("POST", "/auth/v1/recover", params=params, json={"email": email})

    async def enroll_factor(self, access_token: str, friendly_name: str | None = None) -> MfaEnrollment:
        body: dict[str, Any] = {"factor_type": "totp"}
        if friendly_name:
            body["friendly_name"] = friendly_name
        response = await self._request(
            "POST", "/auth/v1/factors", access_token=access_token, json=body
        )
        payload = response.json()
        totp = payload.get("totp") or {}
        return MfaEnrollment(
            id=payload["id"],
            factor_type=payload.get("type", "totp"),
            qr_code=totp.get("qr_code"),
            secret=totp.get("secret"),
            uri=totp.get("uri"),
        )

    async def verify_factor(self, access_token: str, factor_id: str, code: str) -> AuthSession:
        challenge = await self._request(
            "POST", f"/auth/v1/factors/{factor_id}/challenge", access_token=access_token
        )
        response = await self._request(
            "POST",
            f"/auth/v1/factors/{factor_id}/verify",
            access_token=access_token,
            json={"challenge_id": challenge.json()["id"], "code": code},
        )
        return _to_session(response.json())

    async def list_factors(self, access_token: str) -> list[MfaFactor]:
        response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        return [
            MfaFactor(
                id=factor["id"],
                factor_type=factor.get("factor_type", "totp"),
                status=factor.get("status", "unverified"),
                friendly_name=factor.get("friendly_name"),
            )
            for factor in response.json().get("factors") or []
        ]

    async def unenroll_factor(self, access_token: str, factor_id: str) -> None:
        await self._request("DELETE", f"/auth/v1/factors/{factor_id}", access_token=access_token)
