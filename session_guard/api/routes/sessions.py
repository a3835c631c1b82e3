from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request

from session_guard.adapters.supabase.base import AbstractIdentityProvider
from session_guard.api.dependencies import get_identity
from session_guard.core.auth import CurrentUser, get_current_user
from session_guard.schemas.auth import (
    RevokeSessionRequest,
    RevokeSessionResponse,
    SessionsResponse,
    SessionSummary,
)
from session_guard.services.activity import ActivityType, log_activity
from session_guard.utils.client_identifier import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])

SESSION_ID_LENGTH = 16


def summarize_session(user: CurrentUser, *, now: datetime | None = None) -> SessionSummary:
    """Describe the caller's own session.

    The provider exposes no session listing, so only the current session is
    known; its id is the access token prefix.
    """

    now = now or datetime.now(timezone.utc)
    return SessionSummary(
        id=user.access_token[:SESSION_ID_LENGTH],
        user_id=user.id,
        created_at=user.user.created_at,
        updated_at=now.isoformat(),
    )


@router.get("", response_model=SessionsResponse)
async def list_sessions(user: Annotated[CurrentUser, Depends(get_current_user)]) -> SessionsResponse:
    return SessionsResponse(sessions=[summarize_session(user)])


@router.delete("", response_model=RevokeSessionResponse)
async def revoke_session(
    request: Request,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    identity: Annotated[AbstractIdentityProvider, Depends(get_identity)],
    payload: Annotated[RevokeSessionRequest | None, Body()] = None,
) -> RevokeSessionResponse:
    """Revoke a session.

    Individual sessions cannot be targeted upstream; signing out revokes all
    of the user's sessions, including the current one.
    """
    session_id = payload.session_id if payload else None
    await identity.sign_out(user.access_token)

    logger.info("session.revoked", extra={"user_id": user.id, "session_id": session_id})
    log_activity(
        ActivityType.SESSION_REVOKED,
        user_id=user.id,
        ip=get_client_ip(request.headers),
        metadata={"session_id": session_id},
    )
    return RevokeSessionResponse(success=True, was_current_session=True)
