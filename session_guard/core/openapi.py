"""OpenAPI customization.

Adds a bearer security scheme required by default, exempts the endpoints that
work without a session, and registers tag descriptions.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

PUBLIC_PATHS = frozenset(
    {
        "/health",
        "/api/auth/signup",
        "/api/auth/login",
        "/api/auth/password-reset",
    }
)

TAGS = [
    {"name": "Auth", "description": "Sign-up, sign-in, password reset and sign-out."},
    {"name": "MFA", "description": "TOTP factor enrollment and verification."},
    {"name": "Profile", "description": "Profile updates and avatar uploads."},
    {"name": "Sessions", "description": "Listing and revoking the caller's sessions."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap FastAPI's OpenAPI generation with security and tag metadata."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Access token from /api/auth/login (or the session cookie).",
            },
        )
        schema.setdefault("security", [{"BearerAuth": []}])

        tags = schema.setdefault("tags", [])
        existing = {tag.get("name") for tag in tags}
        tags.extend(tag for tag in TAGS if tag["name"] not in existing)

        for path, methods in schema.get("paths", {}).items():
            if path in PUBLIC_PATHS:
                for operation in methods.values():
                    if isinstance(operation, dict):
                        operation["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
