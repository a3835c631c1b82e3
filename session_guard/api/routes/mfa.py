"""TOTP multi-factor management for the signed-in user."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from session_guard.adapters.supabase.base import AbstractIdentityProvider
from session_guard.api.dependencies import get_identity
from session_guard.core.auth import CurrentUser, get_current_user
from session_guard.schemas.auth import (
    MessageResponse,
    MfaEnrollRequest,
    MfaEnrollResponse,
    MfaFactorOut,
    MfaVerifyRequest,
)
from session_guard.services.activity import ActivityType, log_activity
from session_guard.utils.client_identifier import get_client_ip

router = APIRouter(prefix="/auth/mfa", tags=["MFA"])

UserDep = Annotated[CurrentUser, Depends(get_current_user)]
IdentityDep = Annotated[AbstractIdentityProvider, Depends(get_identity)]


@router.get("/factors", response_model=list[MfaFactorOut])
async def list_factors(user: UserDep, identity: IdentityDep) -> list[MfaFactorOut]:
    factors = await identity.list_factors(user.access_token)
    return [
        MfaFactorOut(
            id=factor.id,
            factor_type=factor.factor_type,
            status=factor.status,
            friendly_name=factor.friendly_name,
        )
        for factor in factors
    ]


@router.post("/enroll", response_model=MfaEnrollResponse, status_code=status.HTTP_201_CREATED)
async def enroll_factor(
    request: Request,
    user: UserDep,
    identity: IdentityDep,
    payload: MfaEnrollRequest | None = None,
) -> MfaEnrollResponse:
    """Start TOTP enrollment; the QR code and secret are shown once."""

    enrollment = await identity.enroll_factor(
        user.access_token,
        payload.friendly_name if payload else None,
    )
    log_activity(
        ActivityType.MFA_ENROLLED,
        user_id=user.id,
        ip=get_client_ip(request.headers),
        metadata={"factor_id": enrollment.id},
    )
    return MfaEnrollResponse(
        id=enrollment.id,
        factor_type=enrollment.factor_type,
        qr_code=enrollment.qr_code,
        secret=enrollment.secret,
        uri=enrollment.uri,
    )


@router.post("/verify", response_model=MessageResponse)
async def verify_factor(
    payload: MfaVerifyRequest,
    request: Request,
    user: UserDep,
    identity: IdentityDep,
) -> MessageResponse:
    await identity.verify_factor(user.access_token, payload.factor_id, payload.code)
    log_activity(
        ActivityType.MFA_VERIFIED,
        user_id=user.id,
        ip=get_client_ip(request.headers),
        metadata={"factor_id": payload.factor_id},
    )
    return MessageResponse(message="Factor verified")


@router.delete("/factors/{factor_id}", response_model=MessageResponse)
async def unenroll_factor(
    factor_id: str,
    request: Request,
    user: UserDep,
    identity: IdentityDep,
) -> MessageResponse:
    await identity.unenroll_factor(user.access_token, factor_id)
    log_activity(
        ActivityType.MFA_UNENROLLED,
        user_id=user.id,
        ip=get_client_ip(request.headers),
        metadata={"factor_id": factor_id},
    )
    return MessageResponse(message="Factor removed")
