"""Account endpoints: sign-up, sign-in, password reset and sign-out.

Sign-up and sign-in share the ``auth`` policy; password reset has its own
stricter quota. Both are keyed by the caller's network address because no
session exists yet.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from session_guard.adapters.supabase.base import AbstractIdentityProvider, AuthUser
from session_guard.api.dependencies import get_identity
from session_guard.core.auth import CurrentUser, get_current_user
from session_guard.core.config import settings
from session_guard.core.errors import AuthenticationAppError
from session_guard.core.rate_limit import enforce_rate_limit
from session_guard.schemas.auth import (
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    SessionOut,
    SignupRequest,
    UserOut,
)
from session_guard.services.activity import ActivityType, log_activity
from session_guard.utils.client_identifier import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

IdentityDep = Annotated[AbstractIdentityProvider, Depends(get_identity)]


def _user_out(user: AuthUser) -> UserOut:
    return UserOut(id=user.id, email=user.email, created_at=user.created_at)


@router.post(
    "/signup",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit("auth"))],
)
async def signup(payload: SignupRequest, request: Request, identity: IdentityDep) -> UserOut:
    """Register an account; the provider sends the verification email."""

    user = await identity.sign_up(payload.email, payload.password, payload.full_name)
    log_activity(
        ActivityType.SIGNUP,
        user_id=user.id,
        email=payload.email,
        ip=get_client_ip(request.headers),
        user_agent=request.headers.get("user-agent"),
    )
    return _user_out(user)


@router.post(
    "/login",
    response_model=SessionOut,
    dependencies=[Depends(enforce_rate_limit("auth"))],
)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    identity: IdentityDep,
) -> SessionOut:
    """Exchange credentials for a session and set the session cookie.

    Raises:
        AuthenticationAppError: 401 when the credentials are rejected.
    """
    ip = get_client_ip(request.headers)
    user_agent = request.headers.get("user-agent")

    try:
        session = await identity.sign_in(payload.email, payload.password)
    except AuthenticationAppError:
        log_activity(ActivityType.FAILED_LOGIN, email=payload.email, ip=ip, user_agent=user_agent)
        raise

    response.set_cookie(
        settings.app.access_token_cookie,
        session.access_token,
        httponly=True,
        samesite="lax",
        secure=not settings.app.debug,
    )
    log_activity(
        ActivityType.LOGIN,
        user_id=session.user.id,
        email=payload.email,
        ip=ip,
        user_agent=user_agent,
    )
    return SessionOut(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
        user=_user_out(session.user),
    )


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    dependencies=[Depends(enforce_rate_limit("password_reset"))],
)
async def password_reset(
    payload: PasswordResetRequest,
    request: Request,
    identity: IdentityDep,
) -> MessageResponse:
    # Same answer whether or not the address has an account
    await identity.request_password_reset(payload.email, payload.redirect_to)
    log_activity(
        ActivityType.PASSWORD_RESET,
        email=payload.email,
        ip=get_client_ip(request.headers),
    )
    return MessageResponse(message="If that address has an account, a reset link is on its way.")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    identity: IdentityDep,
) -> MessageResponse:
    await identity.sign_out(user.access_token)
    response.delete_cookie(settings.app.access_token_cookie)
    log_activity(ActivityType.LOGOUT, user_id=user.id, ip=get_client_ip(request.headers))
    return MessageResponse(message="Signed out")


@router.get("/session", response_model=UserOut)
async def current_session(user: Annotated[CurrentUser, Depends(get_current_user)]) -> UserOut:
    """Return the signed-in user, or 401."""

    return _user_out(user.user)
