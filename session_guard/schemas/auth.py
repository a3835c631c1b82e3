"""Pydantic schemas for the auth, session and MFA endpoints."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email address")
    return value.lower()


Email = Annotated[str, AfterValidator(_check_email)]


class SignupRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, alias="fullName")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[0-9]", value):
            raise ValueError("Password must contain at least one number")
        return value


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=6)


class PasswordResetRequest(BaseModel):
    email: Email
    redirect_to: str | None = None


class UserOut(BaseModel):
    id: str
    email: str | None = None
    created_at: str | None = None


class SessionOut(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    user: UserOut


class SessionSummary(BaseModel):
    """Current session as listed on the sessions page."""

    id: str = Field(..., description="First 16 characters of the access token.")
    user_id: str
    created_at: str | None = None
    updated_at: str


class SessionsResponse(BaseModel):
    sessions: list[SessionSummary] = Field(default_factory=list)


class RevokeSessionRequest(BaseModel):
    session_id: str | None = Field(default=None, alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class MfaEnrollRequest(BaseModel):
    friendly_name: str | None = None


class MfaEnrollResponse(BaseModel):
    id: str
    factor_type: str
    qr_code: str | None = None
    secret: str | None = None
    uri: str | None = None


class MfaVerifyRequest(BaseModel):
    factor_id: str
    code: str = Field(..., pattern=r"^\d{6}$")


class MfaFactorOut(BaseModel):
    id: str
    factor_type: str
    status: str
    friendly_name: str | None = None


class RevokeSessionResponse(BaseModel):
    success: bool
    was_current_session: bool


class MessageResponse(BaseModel):
    message: str
