"""Avatar upload workflow: validate, store, return the public URL."""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import UploadFile

from session_guard.adapters.supabase.base import AbstractObjectStorage
from session_guard.core.file_validation import (
    avatar_extension,
    read_avatar_limited,
    validate_avatar_type,
)

logger = logging.getLogger(__name__)


def build_avatar_path(user_id: str, extension: str, *, now_ms: int) -> str:
    """``avatars/{user_id}-{epoch_ms}.{ext}``"""

    return f"avatars/{user_id}-{now_ms}.{extension}"


class AvatarService:
    def __init__(
        self,
        storage: AbstractObjectStorage,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._clock = clock

    async def upload(self, *, user_id: str, access_token: str, file: UploadFile) -> str:
        """Validate and store ``file`` as the user's avatar.

        Returns:
            Public URL of the stored object.

        Raises:
            ValidationAppError: If type or size is rejected (nothing is stored).
            UpstreamAppError: If storage fails.
        """
        content_type = validate_avatar_type(file.content_type)
        data = await read_avatar_limited(file)

        path = build_avatar_path(
            user_id,
            avatar_extension(content_type),
            now_ms=int(self._clock() * 1000),
        )
        await self._storage.put_object(access_token, path, data, content_type)

        logger.info(
            "avatar.uploaded",
            extra={"user_id": user_id, "path": path, "size": len(data)},
        )
        return self._storage.get_public_url(path)
