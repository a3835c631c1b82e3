"""Security activity log.

Records account events as structured ``activity.<type>`` log lines. Caller
email and address are pseudonymized by the logging filters.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger("session_guard.activity")


class ActivityType(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    SIGNUP = "signup"
    FAILED_LOGIN = "failed_login"
    PASSWORD_RESET = "password_reset"
    PROFILE_UPDATE = "profile_update"
    AVATAR_UPLOAD = "avatar_upload"
    SESSION_REVOKED = "session_revoked"
    MFA_ENROLLED = "mfa_enrolled"
    MFA_VERIFIED = "mfa_verified"
    MFA_UNENROLLED = "mfa_unenrolled"


# Events worth a warning-level line for alerting
_SECURITY_EVENTS = {ActivityType.FAILED_LOGIN, ActivityType.MFA_UNENROLLED}


def log_activity(
    activity: ActivityType,
    *,
    user_id: str | None = None,
    email: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Emit one activity event and return the logged fields."""

    entry: dict[str, Any] = {
        "activity": activity.value,
        "user_id": user_id,
        "email": email,
        "ip": ip,
        "user_agent": user_agent,
    }
    if metadata:
        entry["metadata"] = metadata

    level = logging.WARNING if activity in _SECURITY_EVENTS else logging.INFO
    logger.log(level, f"activity.{activity.value}", extra=entry)
    return entry
