"""Session authentication for API routes.

Access tokens are read from the ``Authorization: Bearer`` header, falling
back to the session cookie set by the web client. Validation is delegated to
the identity provider; this module never inspects token contents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from session_guard.adapters.supabase.base import AbstractIdentityProvider, AuthUser
from session_guard.api.dependencies import get_identity
from session_guard.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated principal plus the token that proved it."""

    user: AuthUser
    access_token: str

    @property
    def id(self) -> str:
        return self.user.id


def extract_access_token(request: Request) -> str | None:
    """Return the bearer token or session cookie value, if any.

    Examples:
        ``Authorization: Bearer abc`` -> ``"abc"``; no header and no cookie -> None.
    """

    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()

    return request.cookies.get(settings.app.access_token_cookie) or None


async def resolve_current_user(
    request: Request, identity: AbstractIdentityProvider
) -> CurrentUser | None:
    """Look up the caller's session without raising when there is none."""

    token = extract_access_token(request)
    if not token:
        return None

    user = await identity.get_user(token)
    if user is None:
        return None
    return CurrentUser(user=user, access_token=token)


async def get_current_user(
    request: Request,
    identity: Annotated[AbstractIdentityProvider, Depends(get_identity)],
) -> CurrentUser:
    """FastAPI dependency requiring an authenticated session.

    Usage:
        @router.get("/me")
        async def me(user: Annotated[CurrentUser, Depends(get_current_user)]): ...

    Raises:
        HTTPException: 401 Unauthorized if the token is missing or rejected.
    """

    current = await resolve_current_user(request, identity)
    if current is None:
        logger.info(
            "auth.unauthenticated",
            extra={"path": request.url.path, "token_present": bool(extract_access_token(request))},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug("auth.success", extra={"user_id": current.id})
    return current
