from __future__ import annotations

from session_guard.api.routes.auth import router as auth_router
from session_guard.api.routes.health import router as health_router
from session_guard.api.routes.mfa import router as mfa_router
from session_guard.api.routes.profile import router as profile_router
from session_guard.api.routes.sessions import router as sessions_router

__all__ = ["auth_router", "health_router", "mfa_router", "profile_router", "sessions_router"]
