"""Pydantic schemas for profile updates and avatar uploads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AnyUrl, BaseModel, ConfigDict, Field


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile.

    ``phone`` and ``avatar_url`` accept null; an empty string clears them too.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    full_name: str = Field(
        ...,
        min_length=2,
        description="Display name (at least 2 characters).",
    )
    phone: str | None = Field(
        default=None,
        description="Optional phone number; not format-checked.",
    )
    avatar_url: AnyUrl | Literal[""] | None = Field(
        default=None,
        description="Public URL of the avatar image, or empty/null to clear.",
    )

    def to_fields(self) -> dict[str, Any]:
        """Return the allow-listed columns with empty values normalized to None."""

        return {
            "full_name": self.full_name,
            "phone": self.phone or None,
            "avatar_url": str(self.avatar_url) if self.avatar_url else None,
        }


class ProfileResponse(BaseModel):
    data: dict[str, Any] = Field(..., description="The updated profile record.")


class AvatarUploadResponse(BaseModel):
    url: str = Field(..., description="Public URL of the uploaded avatar.")
