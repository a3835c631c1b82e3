from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from pydantic import ValidationError

from session_guard.adapters.supabase.base import AbstractObjectStorage, AbstractProfileStore
from session_guard.api.dependencies import get_object_storage, get_profile_store, get_rate_limits
from session_guard.core.auth import CurrentUser, get_current_user
from session_guard.core.errors import ValidationAppError
from session_guard.core.exception_handlers import field_errors
from session_guard.core.rate_limit import apply_rate_limit, enforce_rate_limit
from session_guard.schemas.profile import AvatarUploadResponse, ProfileResponse, ProfileUpdate
from session_guard.services.activity import ActivityType, log_activity
from session_guard.services.avatar_service import AvatarService
from session_guard.services.policies import RateLimits
from session_guard.utils.client_identifier import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profile"])


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON",
        ) from exc


@router.patch(
    "/profile",
    response_model=ProfileResponse,
    dependencies=[Depends(enforce_rate_limit("profile"))],
)
async def update_profile(
    request: Request,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    profiles: Annotated[AbstractProfileStore, Depends(get_profile_store)],
) -> ProfileResponse:
    """Update the caller's display name, phone and avatar URL.

    Throttled per network address by the profile policy before anything else
    runs; the quota headers are echoed on success.

    Raises:
        ValidationAppError: 400 with field errors if the body is invalid.
        UpstreamAppError: 500 if the profile store fails.
    """
    body = await read_json_body(request)
    try:
        update = ProfileUpdate.model_validate(body)
    except ValidationError as exc:
        raise ValidationAppError(
            code="validation_failed",
            message="Validation failed",
            details={"fields": field_errors(exc.errors())},
        ) from exc

    record = await profiles.update_profile(user.access_token, user.id, update.to_fields())

    logger.info("profile.updated", extra={"user_id": user.id})
    log_activity(
        ActivityType.PROFILE_UPDATE,
        user_id=user.id,
        ip=get_client_ip(request.headers),
        user_agent=request.headers.get("user-agent"),
    )
    return ProfileResponse(data=record)


@router.get("/profile", response_model=ProfileResponse)
async def read_profile(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    profiles: Annotated[AbstractProfileStore, Depends(get_profile_store)],
) -> ProfileResponse:
    record = await profiles.get_profile(user.access_token, user.id)
    return ProfileResponse(data=record)


@router.post("/upload-avatar", response_model=AvatarUploadResponse)
async def upload_avatar(
    request: Request,
    response: Response,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    storage: Annotated[AbstractObjectStorage, Depends(get_object_storage)],
    rate_limits: Annotated[RateLimits, Depends(get_rate_limits)],
    file: UploadFile = File(..., description="JPEG, PNG or WebP image, 2MB max"),
) -> AvatarUploadResponse:
    """Store a new avatar image and return its public URL.

    Throttled per user by the avatar upload policy. Type and size are
    validated before any storage write.
    """
    await apply_rate_limit(rate_limits.avatar_upload, user.id, response)

    url = await AvatarService(storage).upload(
        user_id=user.id,
        access_token=user.access_token,
        file=file,
    )

    log_activity(
        ActivityType.AVATAR_UPLOAD,
        user_id=user.id,
        ip=get_client_ip(request.headers),
    )
    return AvatarUploadResponse(url=url)
