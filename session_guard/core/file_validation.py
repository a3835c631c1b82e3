"""Avatar upload validation.

Type and size are checked before anything is written to storage; rejected
uploads surface as ``ValidationAppError`` (HTTP 400).
"""

from __future__ import annotations

import logging

from fastapi import UploadFile

from session_guard.core.config import settings
from session_guard.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

ALLOWED_AVATAR_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

_CHUNK_SIZE = 64 * 1024


def max_avatar_bytes() -> int:
    return settings.app.max_avatar_size_mb * 1024 * 1024


def validate_avatar_type(content_type: str | None) -> str:
    """Return the normalized content type if it is an allowed image type.

    Raises:
        ValidationAppError: For any other type.
    """

    normalized = (content_type or "").split(";")[0].strip().lower()
    if normalized not in ALLOWED_AVATAR_TYPES:
        logger.warning("avatar.rejected_type", extra={"content_type": normalized or None})
        raise ValidationAppError(
            code="invalid_file_type",
            message="Invalid file type. Only JPEG, PNG, and WebP are allowed",
            details={"content_type": normalized},
        )
    return normalized


def avatar_extension(content_type: str) -> str:
    """Storage extension for a validated avatar content type."""

    return ALLOWED_AVATAR_TYPES[content_type]


async def read_avatar_limited(file: UploadFile) -> bytes:
    """Read an uploaded avatar in chunks enforcing the size limit.

    Uses ``file.size`` when the multipart parser reported it, and enforces the
    limit again while reading.

    Raises:
        ValidationAppError: If the file is empty or exceeds the limit.
    """

    max_bytes = max_avatar_bytes()
    too_large = ValidationAppError(
        code="file_too_large",
        message=f"File too large. Maximum size is {settings.app.max_avatar_size_mb}MB",
        details={"max_bytes": max_bytes},
    )

    file_size = getattr(file, "size", None)
    if file_size is not None and file_size > max_bytes:
        logger.warning(
            "avatar.rejected_by_header",
            extra={"file_size": file_size, "max_bytes": max_bytes},
        )
        raise too_large

    size = 0
    chunks: list[bytes] = []
    while True:
        chunk = await file.read(_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            logger.warning(
                "avatar.rejected_by_chunked_read",
                extra={"size": size, "max_bytes": max_bytes},
            )
            raise too_large
        chunks.append(chunk)

    if size == 0:
        raise ValidationAppError(code="empty_file", message="No file provided")

    return b"".join(chunks)
